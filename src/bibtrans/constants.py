from __future__ import annotations

DEFAULT_UA = "bibtrans/0.3 (+https://github.com/bibtrans/bibtrans)"
DEFAULT_TIMEOUT_SEC = 30
MAX_RETRIES = 3

# Translator type bitmask
TRANSLATOR_TYPES = {"import": 1, "export": 2, "web": 4, "search": 8}
MODES = tuple(TRANSLATOR_TYPES)

# Byte order marks, in the order they are checked. 32-bit marks overlap the 16-bit ones, so
# sniffing keeps reading while a longer mark can still match.
BOMS = {
	"UTF-8": b"\xef\xbb\xbf",
	"UTF-16BE": b"\xfe\xff",
	"UTF-16LE": b"\xff\xfe",
	"UTF-32BE": b"\x00\x00\xfe\xff",
	"UTF-32LE": b"\xff\xfe\x00\x00",
}

# Maximum number of characters scanned for the metadata header of a translator
MAX_INFO_LENGTH = 4096

REPORT_URL = "https://repo.bibtrans.org/report"

DATA_MODES = ("block", "line", "graph")
