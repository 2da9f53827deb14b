# Lazy wrappers to avoid importing db.py at package import time
def init_db(db_path):
	from .db import init_db as _f
	return _f(db_path)

def open_library(db_path):
	from .db import open_library as _f
	return _f(db_path)
