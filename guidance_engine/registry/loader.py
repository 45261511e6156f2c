"""
Registry source loader.

Reads versioned domain documents (YAML or JSON) and turns them into
validated DomainEntry objects. One document describes one domain:

    version: 1
    domain: rendering-mode
    description: ...
    predicates:                 # optional, shared by reference
      needs_seo: {field: needsSEO, operator: eq, value: true}
    tree:
      name: Rendering mode selection
      root:
        if: {field: contentChangeFrequency, operator: eq, value: realtime}
        then: {recommend: SSR, rationale: ..., caveats: [...]}
        else: {node: static_or_isr}
      nodes:                    # optional named nodes, referenced as {node: name}
        static_or_isr:
          cases:
            - if: {...}
              then: {...}
          else: {...}
    rules:
      - id: contenthash-filenames
        severity: MUST
        predicate: {field: usesContentHash, operator: eq, value: true}
        message: "Output filenames MUST include [contenthash]"
    checklist:
      - category: Caching
        question: Are long-term cache headers set for hashed assets?
        predicate: {...}        # omit for manual review items

All validation happens here, eagerly; a document that loads is safe to walk.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple
import logging
import os

import yaml

from ..decisioning.predicates import ConditionPredicate, parse_predicate
from ..decisioning.tree import (
    Branch,
    DecisionTree,
    Leaf,
    Recommendation,
    TreeStats,
    validate_tree,
)
from ..errors import CycleDetected, DuplicateRuleId, InvalidSource, InvalidTree
from ..validation.checklist import Checklist, ChecklistItem
from ..validation.guardrails import GuardrailRule


logger = logging.getLogger(__name__)


SUPPORTED_VERSIONS = {1}
SOURCE_SUFFIXES = ('.yaml', '.yml', '.json')


@dataclass(frozen=True, eq=False)
class DomainEntry:
    """Everything the engines need for one domain."""
    domain: str
    tree: DecisionTree
    rules: Tuple[GuardrailRule, ...]
    checklist: Checklist
    version: int = 1
    description: Optional[str] = None
    source: Optional[str] = None
    stats: Optional[TreeStats] = None


def read_sources(sources: Iterable[Any]) -> Iterator[Tuple[Mapping[str, Any], str]]:
    """
    Expand sources into parsed documents.

    Args:
        sources: File paths, directory paths, or already-parsed mappings

    Yields:
        (document, origin) pairs; directories are read in sorted file order

    Raises:
        InvalidSource: if a path is missing or a file cannot be parsed
    """
    if isinstance(sources, (str, os.PathLike, Mapping)):
        sources = [sources]

    for index, source in enumerate(sources):
        if isinstance(source, Mapping):
            yield source, f"<mapping {index}>"
            continue

        path = Path(source)
        if path.is_dir():
            files = sorted(p for p in path.iterdir() if p.suffix.lower() in SOURCE_SUFFIXES)
            for file_path in files:
                yield _read_file(file_path), str(file_path)
        elif path.is_file():
            yield _read_file(path), str(path)
        else:
            raise InvalidSource(f"Registry source not found: {path}")


def _read_file(path: Path) -> Any:
    try:
        with open(path, encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise InvalidSource(f"{path}: could not parse document: {e}") from e
    except UnicodeDecodeError as e:
        raise InvalidSource(f"{path}: document is not valid UTF-8: {e}") from e
    except OSError as e:
        raise InvalidSource(f"{path}: could not read document: {e}") from e


def parse_text(text: str, origin: str = "<text>") -> Any:
    """Parse a YAML/JSON document held in memory."""
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise InvalidSource(f"{origin}: could not parse document: {e}") from e


def parse_document(document: Any, origin: str = "<document>") -> DomainEntry:
    """
    Build and validate a DomainEntry from one parsed document.

    Raises:
        InvalidSource: malformed document, predicate, rule or checklist
        InvalidTree: malformed tree (CycleDetected for cycles)
        DuplicateRuleId: repeated rule id
    """
    if not isinstance(document, Mapping):
        raise InvalidSource(f"{origin}: document must be a mapping")

    version = document.get('version')
    if version not in SUPPORTED_VERSIONS:
        raise InvalidSource(
            f"{origin}: unsupported document version {version!r} "
            f"(supported: {sorted(SUPPORTED_VERSIONS)})"
        )

    domain = document.get('domain')
    if not isinstance(domain, str) or not domain.strip():
        raise InvalidSource(f"{origin}: 'domain' must be a non-empty string")
    where = f"{origin} [{domain}]"

    shared = _parse_shared_predicates(document.get('predicates') or {}, where)

    if 'tree' not in document:
        raise InvalidTree(f"{where}: document has no 'tree'")
    tree = _TreeBuilder(document['tree'], shared, where).build()
    stats = validate_tree(tree)

    rules = _parse_rules(document.get('rules') or [], shared, domain, where)
    checklist = _parse_checklist(document.get('checklist') or [], shared, where)

    logger.debug(
        f"Parsed {domain}: {stats.branches} branch(es), {stats.leaves} leaf/leaves, "
        f"{len(rules)} rule(s), {len(checklist)} checklist item(s)"
    )

    return DomainEntry(
        domain=domain,
        tree=tree,
        rules=rules,
        checklist=checklist,
        version=version,
        description=document.get('description'),
        source=origin,
        stats=stats
    )


def _predicate(expr: Any, shared: Mapping[str, ConditionPredicate], where: str) -> ConditionPredicate:
    try:
        return parse_predicate(expr, shared)
    except (TypeError, ValueError) as e:
        raise InvalidSource(f"{where}: {e}") from e


def _parse_shared_predicates(
    definitions: Any,
    where: str
) -> Dict[str, ConditionPredicate]:
    if not isinstance(definitions, Mapping):
        raise InvalidSource(f"{where}: 'predicates' must be a mapping of name to predicate")

    shared: Dict[str, ConditionPredicate] = {}
    # Definitions may refer to earlier definitions only
    for name, expr in definitions.items():
        if isinstance(expr, Mapping) and 'ref' not in expr and 'name' not in expr:
            expr = dict(expr, name=str(name))
        shared[str(name)] = _predicate(expr, shared, f"{where} predicate '{name}'")
    return shared


class _TreeBuilder:
    """Builds frozen tree nodes from the nested document form."""

    def __init__(self, spec: Any, shared: Mapping[str, ConditionPredicate], where: str):
        if not isinstance(spec, Mapping):
            raise InvalidTree(f"{where}: 'tree' must be a mapping")
        if 'root' not in spec:
            raise InvalidTree(f"{where}: tree has no 'root'")

        nodes = spec.get('nodes') or {}
        if not isinstance(nodes, Mapping):
            raise InvalidTree(f"{where}: tree 'nodes' must be a mapping")

        self.spec = spec
        self.shared = shared
        self.where = where
        self.named_specs: Mapping[str, Any] = nodes
        self.named_nodes: Dict[str, Any] = {}
        self.in_progress: Set[int] = set()

    def build(self) -> DecisionTree:
        root = self._node(self.spec['root'], "root")
        name = self.spec.get('name') or self.where
        return DecisionTree(name=str(name), root=root, description=self.spec.get('description'))

    def _node(self, spec: Any, node_path: str):
        if not isinstance(spec, Mapping):
            raise InvalidTree(
                f"{self.where}: expected a node at {node_path}, got {spec!r}; "
                f"every path must end in a leaf"
            )

        if id(spec) in self.in_progress:
            raise CycleDetected(f"{self.where}: node at {node_path} contains itself")
        self.in_progress.add(id(spec))
        try:
            return self._build_node(spec, node_path)
        finally:
            self.in_progress.discard(id(spec))

    def _build_node(self, spec: Mapping, node_path: str):
        if 'node' in spec:
            return self._named(spec['node'], node_path)

        if 'recommend' in spec:
            return Leaf(self._recommendation(spec, node_path))

        if 'cases' in spec:
            return self._cases(spec, node_path)

        if 'if' in spec:
            for key in ('then', 'else'):
                if key not in spec:
                    raise InvalidTree(
                        f"{self.where}: branch at {node_path} has no '{key}'; "
                        f"every path must end in a leaf"
                    )
            predicate = _predicate(spec['if'], self.shared, f"{self.where} at {node_path}")
            return Branch(
                predicate=predicate,
                true_branch=self._node(spec['then'], f"{node_path}/true"),
                false_branch=self._node(spec['else'], f"{node_path}/false")
            )

        raise InvalidTree(
            f"{self.where}: node at {node_path} is neither a leaf ('recommend'), "
            f"a branch ('if'), 'cases' nor a 'node' reference"
        )

    def _named(self, name: Any, node_path: str):
        if not isinstance(name, str):
            raise InvalidTree(f"{self.where}: node reference at {node_path} must be a name")
        if name in self.named_nodes:
            return self.named_nodes[name]
        if name not in self.named_specs:
            raise InvalidTree(f"{self.where}: unknown node reference '{name}' at {node_path}")

        # A reference back into a node still being built raises CycleDetected in _node
        node = self._node(self.named_specs[name], node_path)

        self.named_nodes[name] = node
        return node

    def _cases(self, spec: Mapping, node_path: str):
        cases = spec['cases']
        if not isinstance(cases, list) or not cases:
            raise InvalidTree(f"{self.where}: 'cases' at {node_path} must be a non-empty list")
        if 'else' not in spec:
            raise InvalidTree(
                f"{self.where}: 'cases' at {node_path} has no 'else'; "
                f"every path must end in a leaf"
            )

        # Guarded branches are checked in order: case N's false branch is case N+1
        fallback_path = node_path + "/false" * len(cases)
        node = self._node(spec['else'], fallback_path)
        for index in reversed(range(len(cases))):
            case = cases[index]
            case_path = node_path + "/false" * index
            if not isinstance(case, Mapping) or 'if' not in case or 'then' not in case:
                raise InvalidTree(
                    f"{self.where}: case {index} at {node_path} needs 'if' and 'then'"
                )
            predicate = _predicate(case['if'], self.shared, f"{self.where} at {case_path}")
            node = Branch(
                predicate=predicate,
                true_branch=self._node(case['then'], f"{case_path}/true"),
                false_branch=node
            )
        return node

    def _recommendation(self, spec: Mapping, node_path: str) -> Recommendation:
        label = spec['recommend']
        if not isinstance(label, str) or not label.strip():
            raise InvalidTree(f"{self.where}: leaf at {node_path} has an empty recommendation")

        caveats = spec.get('caveats') or []
        if isinstance(caveats, str):
            caveats = [caveats]
        if not isinstance(caveats, list):
            raise InvalidTree(f"{self.where}: caveats at {node_path} must be a list")

        return Recommendation(
            label=label.strip(),
            rationale=spec.get('rationale'),
            caveats=tuple(str(c) for c in caveats)
        )


def _parse_rules(
    definitions: Any,
    shared: Mapping[str, ConditionPredicate],
    domain: str,
    where: str
) -> Tuple[GuardrailRule, ...]:
    if not isinstance(definitions, list):
        raise InvalidSource(f"{where}: 'rules' must be a list")

    rules: List[GuardrailRule] = []
    seen: Set[str] = set()

    for index, definition in enumerate(definitions):
        if not isinstance(definition, Mapping):
            raise InvalidSource(f"{where}: rule {index} must be a mapping")

        rule_id = definition.get('id')
        if not isinstance(rule_id, str) or not rule_id:
            raise InvalidSource(f"{where}: rule {index} needs a non-empty string 'id'")
        if rule_id in seen:
            raise DuplicateRuleId(domain, rule_id)

        rule_where = f"{where} rule '{rule_id}'"
        if 'predicate' not in definition:
            raise InvalidSource(f"{rule_where}: missing 'predicate'")
        predicate = _predicate(definition['predicate'], shared, rule_where)

        try:
            rule = GuardrailRule(
                rule_id=rule_id,
                severity=definition.get('severity'),
                predicate=predicate,
                message=definition.get('message'),
                description=definition.get('description')
            )
        except ValueError as e:
            raise InvalidSource(f"{where}: {e}") from e

        seen.add(rule.rule_id)
        rules.append(rule)

    return tuple(rules)


def _parse_checklist(
    definitions: Any,
    shared: Mapping[str, ConditionPredicate],
    where: str
) -> Checklist:
    if not isinstance(definitions, list):
        raise InvalidSource(f"{where}: 'checklist' must be a list")

    items: List[ChecklistItem] = []
    for index, definition in enumerate(definitions):
        if not isinstance(definition, Mapping):
            raise InvalidSource(f"{where}: checklist item {index} must be a mapping")

        item_where = f"{where} checklist item {index}"
        predicate = None
        if definition.get('predicate') is not None:
            predicate = _predicate(definition['predicate'], shared, item_where)

        try:
            items.append(ChecklistItem(
                category=definition.get('category'),
                question=definition.get('question'),
                predicate=predicate
            ))
        except ValueError as e:
            raise InvalidSource(f"{item_where}: {e}") from e

    return Checklist(tuple(items))
