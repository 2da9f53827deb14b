"""Graph-structured I/O over an rdflib ``Graph``.

Translators in graph mode see resources (URIs or blank nodes), statements and
RDF containers instead of text. Literal values come back as plain ``str``;
resources come back as rdflib terms, which are ``str`` subclasses too.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Union

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.namespace import RDF

from ..errors import ValidationError

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")
_MEMBER = re.compile(r"_(\d+)$")
RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"

CONTAINER_TYPES = {"bag": RDF.Bag, "seq": RDF.Seq, "alt": RDF.Alt}

Node = Union[URIRef, BNode]


def _member(index: int) -> URIRef:
    return URIRef(f"{RDF_NS}_{index}")


def _member_index(predicate) -> Optional[int]:
    if not isinstance(predicate, URIRef) or not str(predicate).startswith(RDF_NS):
        return None
    m = _MEMBER.search(str(predicate))
    return int(m.group(1)) if m else None


class GraphIO:
    def __init__(self, graph: Optional[Graph] = None, destination: Optional[Path] = None, fmt: str = "xml"):
        self._graph = graph if graph is not None else Graph()
        self.destination = Path(destination) if destination else None
        self.fmt = fmt
        self._closed = False

    @classmethod
    def from_file(cls, path: Path, fmt: str = "xml") -> "GraphIO":
        graph = Graph()
        graph.parse(source=str(path), format=fmt)
        logger.debug(f"Parsed {len(graph)} statements from {path}")
        return cls(graph)

    @classmethod
    def from_string(cls, text: str, base: Optional[str] = None, fmt: str = "xml") -> "GraphIO":
        graph = Graph()
        graph.parse(data=text, format=fmt, publicID=base)
        return cls(graph)

    # conversions

    def _resource(self, about: Any) -> Node:
        if isinstance(about, Literal):
            raise ValidationError(f"Literal {about!r} cannot be used as a resource")
        if isinstance(about, (URIRef, BNode)):
            return about
        if isinstance(about, str) and about:
            return URIRef(about)
        raise ValidationError(f"Invalid resource {about!r}")

    def _value(self, value: Any, literal: bool):
        if literal:
            return Literal(_CONTROL_CHARS.sub("", str(value)))
        return self._resource(value)

    @staticmethod
    def _out(node):
        if isinstance(node, Literal):
            return str(node)
        return node

    # writing

    def add_statement(self, about, relation, value, literal: bool = False) -> None:
        self._graph.add((self._resource(about), self._resource(relation), self._value(value, literal)))

    def new_resource(self) -> BNode:
        return BNode()

    def new_container(self, container_type: str, about=None) -> Node:
        rdf_type = CONTAINER_TYPES.get((container_type or "").lower())
        if rdf_type is None:
            raise ValidationError(f"Invalid container type {container_type!r}")
        node = self._resource(about) if about is not None else BNode()
        self._graph.add((node, RDF.type, rdf_type))
        return node

    def add_container_element(self, about, element, literal: bool = False, index: Optional[int] = None) -> None:
        container = self._resource(about)
        members = self._members(container)
        value = self._value(element, literal)
        if index is None or index > len(members):
            self._graph.add((container, _member(len(members) + 1), value))
            return
        index = max(1, int(index))
        # shift the tail up by one to make room
        for pos in range(len(members), index - 1, -1):
            old = members[pos - 1]
            self._graph.remove((container, _member(pos), old))
            self._graph.add((container, _member(pos + 1), old))
        self._graph.add((container, _member(index), value))

    def _members(self, container: Node) -> list:
        found = []
        for predicate, obj in self._graph.predicate_objects(container):
            idx = _member_index(predicate)
            if idx is not None:
                found.append((idx, obj))
        return [obj for _, obj in sorted(found, key=lambda t: t[0])]

    def get_container_elements(self, about) -> List[Any]:
        return [self._out(o) for o in self._members(self._resource(about))]

    def add_namespace(self, prefix: str, uri: str) -> None:
        self._graph.bind(prefix, URIRef(uri), override=True)

    # reading

    def get_resource_uri(self, resource) -> Optional[str]:
        if isinstance(resource, BNode):
            return None
        return str(resource) if resource is not None else None

    def get_all_resources(self) -> List[Node]:
        return list(dict.fromkeys(self._graph.subjects()))

    def get_arcs_in(self, resource) -> List[URIRef]:
        node = self._resource(resource)
        return list(dict.fromkeys(self._graph.predicates(object=node)))

    def get_arcs_out(self, resource) -> List[URIRef]:
        node = self._resource(resource)
        return list(dict.fromkeys(self._graph.predicates(subject=node)))

    def get_sources(self, resource, prop) -> Optional[List[Node]]:
        found = list(self._graph.subjects(self._resource(prop), self._resource(resource)))
        return found or None

    def get_targets(self, resource, prop) -> Optional[List[Any]]:
        found = [self._out(o) for o in self._graph.objects(self._resource(resource), self._resource(prop))]
        return found or None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.destination is not None:
            self._graph.serialize(destination=str(self.destination), format=self.fmt)
            logger.debug(f"Wrote {len(self._graph)} statements to {self.destination}")

    def serialize(self) -> str:
        return self._graph.serialize(format=self.fmt)


class GraphAccess:
    """The graph primitives a translator may call; nothing that reads or writes files."""

    def __init__(self, graph_io: GraphIO):
        self._io = graph_io

    def add_statement(self, about, relation, value, literal: bool = False) -> None:
        self._io.add_statement(about, relation, value, literal)

    def new_resource(self):
        return self._io.new_resource()

    def new_container(self, container_type: str, about=None):
        return self._io.new_container(container_type, about)

    def add_container_element(self, about, element, literal: bool = False, index: Optional[int] = None) -> None:
        self._io.add_container_element(about, element, literal, index)

    def get_container_elements(self, about):
        return self._io.get_container_elements(about)

    def add_namespace(self, prefix: str, uri: str) -> None:
        self._io.add_namespace(prefix, uri)

    def get_resource_uri(self, resource):
        return self._io.get_resource_uri(resource)

    def get_all_resources(self):
        return self._io.get_all_resources()

    def get_arcs_in(self, resource):
        return self._io.get_arcs_in(resource)

    def get_arcs_out(self, resource):
        return self._io.get_arcs_out(resource)

    def get_sources(self, resource, prop):
        return self._io.get_sources(resource, prop)

    def get_targets(self, resource, prop):
        return self._io.get_targets(resource, prop)
