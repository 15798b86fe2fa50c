"""
Builds an ObjectModel from a declarative YAML (or JSON) graph description.

    file: zoo.src
    modules:
      - name: Chewing
        methods:
          - {name: chew, line: 3, params: ["req food", "block"]}
    classes:
      - name: Animal
        include: [Chewing]
        methods: [...]
        singleton_methods: [...]
        aliases: {fress: eat}
    objects:
      rex: {class: Animal, extend: [Chewing]}

Entities are created in file order, modules first; a superclass, included or
extended module must be declared before it is referenced.
"""
from __future__ import annotations

import collections.abc
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from mfind.mfind_datatypes import Param
from mfind.mfind_model import Entity, Instance, ObjectModel


class GraphFormatError(ValueError):
    pass


def load_graph(text: str, *, default_file: Optional[str] = None) -> Tuple[ObjectModel, Dict[str, Any]]:
    """
    Parse a graph description and return (model, objects).
    `objects` maps the names under `objects:` to the created instances.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise GraphFormatError(f"invalid graph file: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, collections.abc.Mapping):
        raise GraphFormatError("graph must be a mapping at the top level")
    return _GraphBuilder(data, default_file).build()


def load_graph_file(path: str) -> Tuple[ObjectModel, Dict[str, Any]]:
    p = Path(path)
    return load_graph(p.read_text(encoding="utf-8"), default_file=p.name)


class _GraphBuilder:
    def __init__(self, data: collections.abc.Mapping, default_file: Optional[str]):
        self.data = data
        self.file = str(data.get('file') or default_file or "(graph)")
        self.model = ObjectModel()

    def build(self) -> Tuple[ObjectModel, Dict[str, Any]]:
        for spec in self._list('modules'):
            self._entity(spec, is_module=True)
        for spec in self._list('classes'):
            self._entity(spec, is_module=False)
        objects: Dict[str, Any] = {}
        raw_objects = self.data.get('objects') or {}
        if not isinstance(raw_objects, collections.abc.Mapping):
            raise GraphFormatError("'objects' must be a mapping of name to object")
        for name, spec in raw_objects.items():
            objects[str(name)] = self._object(str(name), spec or {})
        return self.model, objects

    def _list(self, key: str) -> list:
        items = self.data.get(key) or []
        if not isinstance(items, list):
            raise GraphFormatError(f"'{key}' must be a list")
        return items

    def _entity(self, spec, *, is_module: bool) -> Entity:
        if not isinstance(spec, collections.abc.Mapping) or not spec.get('name'):
            raise GraphFormatError(f"every entry needs a name: {spec!r}")
        name = str(spec['name'])
        existing = self.model.constants.get(name)
        if isinstance(existing, Entity):
            # Reopening an existing entity adds to it.
            entity = existing
            if entity.is_module != is_module:
                kind = "module" if entity.is_module else "class"
                raise GraphFormatError(f"{name} is already a {kind}")
            if spec.get('superclass') and self._ref(spec['superclass']) is not entity.superclass:
                raise GraphFormatError(f"superclass mismatch for class {name}")
        elif is_module:
            entity = self.model.define_module(name)
        else:
            superclass = self._ref(spec['superclass']) if spec.get('superclass') else self.model.object
            entity = self.model.define_class(name, superclass=superclass)

        try:
            entity.include(*(self._ref(m) for m in spec.get('include') or []))
            entity.extend(*(self._ref(m) for m in spec.get('extend') or []))
        except TypeError as e:
            raise GraphFormatError(f"{name}: {e}") from e
        for m in spec.get('methods') or []:
            self._method(entity, m)
        for m in spec.get('singleton_methods') or []:
            self._method(entity.singleton_class(), m)
        self._aliases(entity, spec.get('aliases') or {})
        return entity

    def _object(self, name: str, spec) -> Instance:
        if not isinstance(spec, collections.abc.Mapping) or not spec.get('class'):
            raise GraphFormatError(f"object '{name}' needs a class")
        cls = self._ref(spec['class'])
        try:
            obj = self.model.new(cls)
            obj.extend(*(self._ref(m) for m in spec.get('extend') or []))
        except TypeError as e:
            raise GraphFormatError(f"object '{name}': {e}") from e
        for m in spec.get('singleton_methods') or []:
            self._method(obj.singleton_class(), m)
        aliases = spec.get('aliases') or {}
        if aliases:
            if obj.singleton is None:
                raise GraphFormatError(f"object '{name}': aliases need singleton_methods or extend")
            self._aliases(obj.singleton, aliases)
        return obj

    def _method(self, owner: Entity, spec):
        if isinstance(spec, str):
            spec = {'name': spec}
        if not isinstance(spec, collections.abc.Mapping) or not spec.get('name'):
            raise GraphFormatError(f"method entry needs a name: {spec!r}")
        location = None
        if spec.get('line') is not None:
            try:
                location = (str(spec.get('file') or self.file), int(spec['line']))
            except (TypeError, ValueError) as e:
                raise GraphFormatError(f"method '{spec['name']}': bad line: {e}") from e
        try:
            params = [Param.parse(p) if isinstance(p, str) else Param(p['kind'], p.get('name'))
                      for p in spec.get('params') or []]
            owner.define_method(str(spec['name']), params, location, spec.get('source'),
                                primitive=bool(spec.get('primitive', False)))
        except (ValueError, KeyError, TypeError) as e:
            raise GraphFormatError(f"method '{spec['name']}': bad parameters: {e}") from e

    def _aliases(self, owner: Entity, aliases):
        if not isinstance(aliases, collections.abc.Mapping):
            raise GraphFormatError("'aliases' must map new names to existing names")
        for new_name, old_name in aliases.items():
            try:
                owner.alias_method(str(new_name), str(old_name))
            except KeyError as e:
                raise GraphFormatError(e.args[0]) from e

    def _ref(self, name) -> Entity:
        found = self.model.constants.get(str(name))
        if not isinstance(found, Entity):
            raise GraphFormatError(f"unknown entity '{name}'")
        return found
