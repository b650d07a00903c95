"""
Spec Builder - applies a prompt (or an LLM intent) to an InfraSpec.

Every handler is a pure function: the caller's spec is never modified and
the outcome is a BuildResult value, never an exception. Knowledge
validation runs once per successful mutation against the final spec.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from infraflow.knowledge.store import KnowledgeGraphStore, get_knowledge_store
from infraflow.parser import topology
from infraflow.parser.component_detector import (
    Mention,
    PositionHint,
    detect_command_type,
    detect_mentions,
    find_position_hint,
    parse_custom_prompt,
    resolve_reference,
)
from infraflow.parser.explanation import build_explanation
from infraflow.parser.intent import IntentAnalysis, IntentComponent
from infraflow.parser.templates import match_fallback_template, match_template, match_template_by_id
from infraflow.parser.validation import KnowledgeSuggestion, KnowledgeWarning, validate_with_knowledge
from infraflow.spec.context import build_context_from_spec, context_to_string
from infraflow.spec.model import InfraConnection, InfraNode, InfraSpec

logger = logging.getLogger(__name__)

# ============================================================
# MESSAGES
# ============================================================

ERR_NO_SPEC = "먼저 아키텍처를 생성해주세요."
ERR_NOTHING_TO_ADD = "추가할 컴포넌트를 인식하지 못했습니다."
ERR_NOTHING_TO_REMOVE = "삭제할 컴포넌트를 찾지 못했습니다."
ERR_NOTHING_TO_MODIFY = "수정할 컴포넌트를 인식하지 못했습니다."
ERR_MODIFY_TARGET_MISSING = "수정할 컴포넌트를 찾지 못했습니다."
ERR_CONNECT_NEEDS_TWO = "연결할 두 컴포넌트를 지정해주세요."
ERR_NODE_NOT_FOUND = "해당 컴포넌트를 찾을 수 없습니다."
ERR_DISCONNECT_NEEDS_TWO = "연결 해제할 두 컴포넌트를 지정해주세요."
ERR_CONNECTION_NOT_FOUND = "해당 연결을 찾을 수 없습니다."
ERR_UNRECOGNIZED = "입력하신 내용을 정확히 인식하지 못했습니다."

TEMPLATE_CONFIDENCE = 0.8
DETECTION_CONFIDENCE = 0.5
FALLBACK_CONFIDENCE = 0.3
EDIT_CONFIDENCE = 0.8

_REMOVE_WORDS = re.compile(r"삭제|제거|없애|빼|\b(remove|delete|drop)\b", re.I)
_QUOTED = re.compile(r"[\"'“”‘’「」]([^\"'“”‘’「」]+)[\"'“”‘’「」]")
_RENAME_EN = re.compile(r"rename\s+(?:the\s+)?(.+?)\s+(?:to|as)\s+(.+?)[.!]?$", re.I)
_RENAME_KO = re.compile(r"(.+?)\s*(?:의\s*)?(?:이름|라벨|레이블)을?\s*(.+?)\s*(?:으로|로)\s*(?:변경|바꿔|수정)", re.I)


# ============================================================
# RESULT TYPES
# ============================================================

@dataclass
class Modification:
    type: str  # add-node | remove-node | add-connection | remove-connection | modify-node
    target: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        out: Dict[str, Any] = {"type": self.type}
        if self.target is not None:
            out["target"] = self.target
        if self.data:
            out["data"] = self.data
        return out


@dataclass
class BuildOptions:
    use_templates: bool = True
    use_component_detection: bool = True


@dataclass
class BuildResult:
    success: bool
    spec: Optional[InfraSpec] = None
    command_type: Optional[str] = None
    confidence: float = 0.0
    modifications: List[Modification] = field(default_factory=list)
    warnings: Optional[List[KnowledgeWarning]] = None
    suggestions: Optional[List[KnowledgeSuggestion]] = None
    explanation: Optional[str] = None
    error: Optional[str] = None
    template_used: Optional[str] = None
    is_fallback: bool = False

    def to_dict(self) -> Dict:
        data: Dict[str, Any] = {"success": self.success, "confidence": self.confidence}
        if self.spec is not None:
            data["spec"] = self.spec.to_dict()
        if self.command_type:
            data["commandType"] = self.command_type
        if self.modifications:
            data["modifications"] = [m.to_dict() for m in self.modifications]
        if self.warnings is not None:
            data["warnings"] = [w.to_dict() for w in self.warnings]
        if self.suggestions is not None:
            data["suggestions"] = [s.to_dict() for s in self.suggestions]
        if self.explanation:
            data["explanation"] = self.explanation
        if self.error:
            data["error"] = self.error
        if self.template_used:
            data["templateUsed"] = self.template_used
        if self.is_fallback:
            data["isFallback"] = True
        return data


def _fail(command_type: str, error: str, confidence: float = 0.0, spec: Optional[InfraSpec] = None) -> BuildResult:
    return BuildResult(success=False, spec=spec, command_type=command_type, confidence=confidence, error=error)


def _succeed(
    command_type: str,
    spec: InfraSpec,
    affected_types,
    store: Optional[KnowledgeGraphStore],
    before: Optional[InfraSpec] = None,
    **kwargs: Any,
) -> BuildResult:
    """Successful result with knowledge validation run against the final spec."""
    store = store or get_knowledge_store()
    warnings, suggestions = validate_with_knowledge(spec, affected_types, store, before=before)
    return BuildResult(
        success=True,
        spec=spec,
        command_type=command_type,
        warnings=warnings,
        suggestions=suggestions,
        **kwargs,
    )


def _connection_diff(before: InfraSpec, after: InfraSpec) -> List[Modification]:
    old = {c.key for c in before.connections}
    new = {c.key for c in after.connections}
    mods = [
        Modification("remove-connection", data={"source": s, "target": t})
        for s, t in (c.key for c in before.connections) if (s, t) not in new
    ]
    mods.extend(
        Modification("add-connection", data={"source": s, "target": t})
        for s, t in (c.key for c in after.connections) if (s, t) not in old
    )
    return mods


def _referenced_nodes(text: str, spec: InfraSpec) -> List[InfraNode]:
    """Nodes named in the text (by id, else by type), in text order."""
    lowered = text.lower()
    hits: List[Tuple[int, int, InfraNode]] = []
    for node in spec.nodes:
        m = re.search(rf"(?<![\w-]){re.escape(node.id.lower())}(?![\w-])", lowered)
        if m:
            hits.append((m.start(), m.end(), node))

    taken = {n.id for _, _, n in hits}
    for mention in detect_mentions(lowered):
        if any(s <= mention.start < e for s, e, _ in hits):
            continue
        for node in spec.nodes_of_type(mention.type):
            if node.id not in taken:
                hits.append((mention.start, mention.end, node))
                taken.add(node.id)
                break
    return [n for _, _, n in sorted(hits, key=lambda h: h[0])]


# ============================================================
# CREATE
# ============================================================

def handle_create(
    prompt: str,
    options: Optional[BuildOptions] = None,
    store: Optional[KnowledgeGraphStore] = None,
) -> BuildResult:
    """
    Build a fresh spec: keyword template, then template id, then
    component detection. When nothing applies the result fails and
    carries the fallback template as a suggested starting point.
    """
    options = options or BuildOptions()
    empty = InfraSpec.empty()

    if options.use_templates:
        template = match_template(prompt) or match_template_by_id(prompt)
        if template is not None:
            spec = template.spec
            return _succeed(
                "create", spec, spec.node_types(), store, before=empty,
                confidence=TEMPLATE_CONFIDENCE,
                template_used=template.id,
                explanation=build_explanation(spec, template.id),
            )

    if options.use_component_detection:
        spec = parse_custom_prompt(prompt)
        if spec is not None:
            return _succeed(
                "create", spec, spec.node_types(), store, before=empty,
                confidence=DETECTION_CONFIDENCE,
                modifications=[Modification("add-node", target=n.id, data={"type": n.type}) for n in spec.nodes],
                explanation=build_explanation(spec),
            )

    logger.info("Prompt not recognized, returning fallback template")
    result = _fail("create", ERR_UNRECOGNIZED, FALLBACK_CONFIDENCE)
    if options.use_templates:
        result.spec = match_fallback_template(prompt)
        result.is_fallback = True
    return result


def build_from_intent(intent: IntentAnalysis, store: Optional[KnowledgeGraphStore] = None) -> Optional[BuildResult]:
    """Fresh spec from the components of a create intent, None when it names none."""
    if not intent.components:
        return None
    components = list(intent.components)
    if not any(c.type in ("user", "internet") for c in components):
        components.insert(0, IntentComponent(type="user"))

    spec = InfraSpec.empty()
    for comp in components:
        spec = spec.with_node(_node_from_component(spec, comp))
    for conn in topology.chain_connections(spec.nodes):
        spec = spec.with_connection(conn)

    return _succeed(
        "create", spec, spec.node_types(), store, before=InfraSpec.empty(),
        confidence=intent.confidence,
        modifications=[Modification("add-node", target=n.id, data={"type": n.type}) for n in spec.nodes],
        explanation=build_explanation(spec),
    )


def _node_from_component(spec: InfraSpec, comp: IntentComponent) -> InfraNode:
    return InfraNode(
        id=spec.next_node_id(comp.type),
        type=comp.type,
        label=comp.label or "",
        description=comp.description,
    )


# ============================================================
# ADD
# ============================================================

def _place(spec: InfraSpec, node_id: str, hint: Optional[PositionHint],
           ref: Optional[InfraNode], ref2: Optional[InfraNode]) -> InfraSpec:
    if hint is None:
        return topology.connect_by_tier(spec, node_id)
    if hint.type == "start":
        return topology.insert_at_start(spec, node_id)
    if hint.type == "end":
        return topology.insert_at_end(spec, node_id)
    if ref is None:
        # unresolved reference, use the default policy
        return topology.connect_by_tier(spec, node_id)
    if hint.type == "after":
        return topology.insert_after(spec, node_id, ref.id)
    if hint.type == "before":
        return topology.insert_before(spec, node_id, ref.id)
    if hint.type == "between" and ref2 is not None:
        return topology.insert_between(spec, node_id, ref.id, ref2.id)
    return topology.insert_after(spec, node_id, ref.id)


def _hint_from_intent(intent: Optional[IntentAnalysis]) -> Optional[PositionHint]:
    if intent is None or intent.position is None:
        return None
    pos = intent.position
    return PositionHint(type=pos.type, reference=pos.reference, reference_second=pos.reference_second)


def _excluding_references(mentions: Sequence[Mention], hint: Optional[PositionHint],
                          refs: Sequence[Optional[InfraNode]]) -> List[Mention]:
    """Drop the mentions that only name the position reference."""
    if hint is None:
        return list(mentions)
    ref_types = {r.type for r in refs if r is not None}
    start, end = hint.span
    return [
        m for m in mentions
        if not (m.type in ref_types and start <= m.start and m.end <= end)
    ]


def handle_add(
    prompt: str,
    current_spec: Optional[InfraSpec],
    intent: Optional[IntentAnalysis] = None,
    store: Optional[KnowledgeGraphStore] = None,
) -> BuildResult:
    """
    Append the component(s) named by the intent (or detected in the prompt)
    to a copy of `current_spec`, wired by position hint or tier adjacency.
    """
    if current_spec is None:
        return _fail("add", ERR_NO_SPEC, 0.0)

    hint = _hint_from_intent(intent) or find_position_hint(prompt.lower())
    ref = resolve_reference(current_spec, hint.reference) if hint else None
    ref2 = resolve_reference(current_spec, hint.reference_second) if hint else None

    if intent is not None and intent.components:
        components = list(intent.components)
    else:
        mentions = _excluding_references(detect_mentions(prompt.lower()), hint, (ref, ref2))
        components = [IntentComponent(type=m.type) for m in mentions]

    if not components:
        return _fail("add", ERR_NOTHING_TO_ADD, FALLBACK_CONFIDENCE)

    spec = current_spec
    modifications: List[Modification] = []
    for comp in components:
        node = _node_from_component(spec, comp)
        spec = spec.with_node(node)
        modifications.append(Modification("add-node", target=node.id, data={"type": node.type, "label": node.label}))

        wired = _place(spec, node.id, hint, ref, ref2)
        modifications.extend(_connection_diff(spec, wired))
        spec = wired

        # several new nodes at one position form a chain
        if hint is not None and hint.type in ("after", "end", "between"):
            ref = node
            hint = PositionHint(type="after", span=hint.span)

    added_types = [c.type for c in components]
    return _succeed(
        "add", spec, added_types, store, before=current_spec,
        confidence=intent.confidence if intent else EDIT_CONFIDENCE,
        modifications=modifications,
    )


# ============================================================
# REMOVE
# ============================================================

def _remove_nodes(spec: InfraSpec, node_ids: Sequence[str]) -> Tuple[InfraSpec, List[Modification]]:
    """Remove nodes, bridging each removed path node's predecessors to its successors."""
    removed = set(node_ids)
    result = spec
    modifications: List[Modification] = []
    for node_id in node_ids:
        node = result.get_node(node_id)
        if node is None:
            continue
        preds = [c for c in result.connections if c.target == node_id and c.source not in removed]
        succs = [c for c in result.connections if c.source == node_id and c.target not in removed]
        after = result.without_node(node_id)
        if not topology.is_side(node):
            for p in preds:
                for s in succs:
                    if p.source != s.target:
                        after = after.with_connection(
                            InfraConnection(source=p.source, target=s.target, flow_type=p.flow_type)
                        )
        modifications.append(Modification("remove-node", target=node_id, data={"type": node.type}))
        modifications.extend(_connection_diff(result, after))
        result = after
    return result, modifications


def handle_remove(
    prompt: str,
    current_spec: Optional[InfraSpec],
    intent: Optional[IntentAnalysis] = None,
    store: Optional[KnowledgeGraphStore] = None,
) -> BuildResult:
    if current_spec is None:
        return _fail("remove", ERR_NO_SPEC, 0.0)

    store = store or get_knowledge_store()
    if intent is not None and intent.components:
        wanted = {c.type for c in intent.components}
        targets = [n for n in current_spec.nodes if n.type in wanted]
    else:
        named = _referenced_nodes(prompt, current_spec)
        by_id = [n for n in named if n.id.lower() in prompt.lower()]
        # a bare type name removes every node of that type
        targets = by_id or [
            n for n in current_spec.nodes if n.type in {r.type for r in named}
        ]

    if not targets:
        return _fail("remove", ERR_NOTHING_TO_REMOVE, FALLBACK_CONFIDENCE)

    spec, modifications = _remove_nodes(current_spec, [n.id for n in targets])

    target_ids = {n.id for n in targets}
    removed_types = {n.type for n in targets} - spec.node_types()
    neighbours = set()
    for c in current_spec.connections:
        if c.source in target_ids and c.target not in target_ids:
            neighbours.add(current_spec.get_node(c.target).type)
        elif c.target in target_ids and c.source not in target_ids:
            neighbours.add(current_spec.get_node(c.source).type)
    dependants = {
        t for t in spec.node_types()
        if any(needed in removed_types for _, needed in store.dependencies_for(t))
    }
    affected = (neighbours | dependants) & spec.node_types()

    return _succeed(
        "remove", spec, affected, store, before=current_spec,
        confidence=intent.confidence if intent else EDIT_CONFIDENCE,
        modifications=modifications,
    )


# ============================================================
# MODIFY
# ============================================================

def _relabel_request(prompt: str) -> Optional[Tuple[str, str]]:
    """(target text, new label) for rename requests."""
    quoted = _QUOTED.search(prompt)
    if quoted:
        target_text = prompt[:quoted.start()] + prompt[quoted.end():]
        return target_text, quoted.group(1).strip()
    for pattern in (_RENAME_EN, _RENAME_KO):
        m = pattern.search(prompt)
        if m:
            return m.group(1), m.group(2).strip()
    return None


def handle_modify(
    prompt: str,
    current_spec: Optional[InfraSpec],
    intent: Optional[IntentAnalysis] = None,
    store: Optional[KnowledgeGraphStore] = None,
) -> BuildResult:
    """
    Relabel, reposition, retype or remove existing nodes.

    - quoted text / "rename X to Y": new label for X
    - position hint: X is detached and re-inserted at the new position
    - "change X to Y" with Y a component type: X keeps its id, becomes Y
    - removal words: delegated to handle_remove
    """
    if current_spec is None:
        return _fail("modify", ERR_NO_SPEC, 0.0)

    confidence = intent.confidence if intent else EDIT_CONFIDENCE

    if _REMOVE_WORDS.search(prompt) and intent is None:
        result = handle_remove(prompt, current_spec, store=store)
        result.command_type = "modify"
        return result

    relabel = _relabel_request(prompt)
    if relabel is not None:
        target_text, new_label = relabel
        targets = _referenced_nodes(target_text, current_spec)
        if not targets:
            return _fail("modify", ERR_MODIFY_TARGET_MISSING, FALLBACK_CONFIDENCE)
        node = targets[0]
        spec = current_spec.with_node_update(node.id, label=new_label)
        return _succeed(
            "modify", spec, [node.type], store, before=current_spec,
            confidence=confidence,
            modifications=[Modification("modify-node", target=node.id, data={"label": new_label})],
        )

    hint = _hint_from_intent(intent) or find_position_hint(prompt.lower())
    if hint is not None:
        return _reposition(prompt, current_spec, hint, intent, store, confidence)

    return _retype(prompt, current_spec, intent, store, confidence)


def _reposition(prompt, current_spec, hint, intent, store, confidence) -> BuildResult:
    ref = resolve_reference(current_spec, hint.reference)
    ref2 = resolve_reference(current_spec, hint.reference_second)

    if intent is not None and intent.components:
        candidates = [n for c in intent.components for n in current_spec.nodes_of_type(c.type)]
    else:
        candidates = _referenced_nodes(prompt, current_spec)
    candidates = [n for n in candidates if n not in (ref, ref2)]
    if not candidates:
        return _fail("modify", ERR_MODIFY_TARGET_MISSING, FALLBACK_CONFIDENCE)

    node = candidates[0]
    detached, _ = _remove_nodes(current_spec, [node.id])
    spec = _place(detached.with_node(node), node.id, hint, ref, ref2)
    # keep the original node order
    spec = InfraSpec(nodes=current_spec.nodes, connections=spec.connections, zones=spec.zones)

    return _succeed(
        "modify", spec, [node.type], store, before=current_spec,
        confidence=confidence,
        modifications=_connection_diff(current_spec, spec),
    )


def _retype(prompt, current_spec, intent, store, confidence) -> BuildResult:
    if intent is not None and intent.components:
        mentioned = [c.type for c in intent.components]
        labels = {c.type: c.label for c in intent.components if c.label}
    else:
        mentioned = [m.type for m in detect_mentions(prompt.lower())]
        labels = {}

    present = current_spec.node_types()
    old_type = next((t for t in mentioned if t in present), None)
    if old_type is None:
        return _fail("modify", ERR_NOTHING_TO_MODIFY, FALLBACK_CONFIDENCE)
    new_type = next((t for t in mentioned if t != old_type), None)

    spec = current_spec
    modifications = []
    if new_type is None:
        # same type named again: only a label from the intent can change
        if old_type not in labels:
            return _fail("modify", ERR_NOTHING_TO_MODIFY, FALLBACK_CONFIDENCE)
        node = current_spec.nodes_of_type(old_type)[0]
        spec = spec.with_node_update(node.id, label=labels[old_type])
        modifications.append(Modification("modify-node", target=node.id, data={"label": labels[old_type]}))
        return _succeed("modify", spec, [old_type], store, before=current_spec,
                        confidence=confidence, modifications=modifications)

    for node in current_spec.nodes_of_type(old_type):
        label = labels.get(new_type, "")
        spec = spec.with_node_update(node.id, type=new_type, label=label, tier=None)
        modifications.append(Modification("modify-node", target=node.id, data={"type": new_type}))

    return _succeed(
        "modify", spec, [new_type], store, before=current_spec,
        confidence=confidence, modifications=modifications,
    )


# ============================================================
# CONNECT / DISCONNECT / QUERY
# ============================================================

def _endpoints(prompt: str, spec: InfraSpec, intent: Optional[IntentAnalysis]) -> List[InfraNode]:
    if intent is not None and intent.position and intent.position.reference and intent.position.reference_second:
        nodes = [
            resolve_reference(spec, intent.position.reference),
            resolve_reference(spec, intent.position.reference_second),
        ]
        found = []
        for node in nodes:
            if node is not None and node not in found:
                found.append(node)
        return found
    if intent is not None and len(intent.components) >= 2:
        found = []
        for comp in intent.components[:2]:
            matches = [n for n in spec.nodes_of_type(comp.type) if n not in found]
            if matches:
                found.append(matches[0])
        return found
    return _referenced_nodes(prompt, spec)


def _mentions_two(prompt: str, intent: Optional[IntentAnalysis]) -> bool:
    if intent is not None:
        pos = intent.position
        return len(intent.components) >= 2 or bool(pos and pos.reference and pos.reference_second)
    return len(detect_mentions(prompt.lower())) >= 2 or len(re.findall(r"[a-z][\w]*-\d+", prompt.lower())) >= 2


def handle_connect(
    prompt: str,
    current_spec: Optional[InfraSpec],
    intent: Optional[IntentAnalysis] = None,
    store: Optional[KnowledgeGraphStore] = None,
) -> BuildResult:
    if current_spec is None:
        return _fail("connect", ERR_NO_SPEC, 0.0)

    nodes = _endpoints(prompt, current_spec, intent)
    if len(nodes) < 2:
        if not _mentions_two(prompt, intent):
            return _fail("connect", ERR_CONNECT_NEEDS_TWO, FALLBACK_CONFIDENCE)
        return _fail("connect", ERR_NODE_NOT_FOUND, FALLBACK_CONFIDENCE)

    source, target = nodes[0], nodes[1]
    spec = current_spec.with_connection(
        InfraConnection(source=source.id, target=target.id, flow_type=topology.DEFAULT_FLOW)
    )
    return _succeed(
        "connect", spec, [source.type, target.type], store, before=current_spec,
        confidence=intent.confidence if intent else EDIT_CONFIDENCE,
        modifications=_connection_diff(current_spec, spec),
    )


def handle_disconnect(
    prompt: str,
    current_spec: Optional[InfraSpec],
    intent: Optional[IntentAnalysis] = None,
    store: Optional[KnowledgeGraphStore] = None,
) -> BuildResult:
    if current_spec is None:
        return _fail("disconnect", ERR_NO_SPEC, 0.0)

    nodes = _endpoints(prompt, current_spec, intent)
    if len(nodes) < 2:
        return _fail("disconnect", ERR_DISCONNECT_NEEDS_TWO, FALLBACK_CONFIDENCE)

    a, b = nodes[0], nodes[1]
    spec = current_spec.without_connection(a.id, b.id).without_connection(b.id, a.id)
    if len(spec.connections) == len(current_spec.connections):
        return _fail("disconnect", ERR_CONNECTION_NOT_FOUND, FALLBACK_CONFIDENCE)

    return _succeed(
        "disconnect", spec, [a.type, b.type], store, before=current_spec,
        confidence=intent.confidence if intent else EDIT_CONFIDENCE,
        modifications=_connection_diff(current_spec, spec),
    )


def handle_query(prompt: str, current_spec: Optional[InfraSpec]) -> BuildResult:
    """Questions leave the spec as is and answer with the context summary."""
    context = build_context_from_spec(current_spec)
    return BuildResult(
        success=True,
        spec=current_spec,
        command_type="query",
        confidence=1.0,
        explanation=context_to_string(context),
    )


# ============================================================
# DISPATCH
# ============================================================

HANDLERS = {
    "add": handle_add,
    "remove": handle_remove,
    "modify": handle_modify,
    "connect": handle_connect,
    "disconnect": handle_disconnect,
}


def apply_command(
    prompt: str,
    current_spec: Optional[InfraSpec],
    options: Optional[BuildOptions] = None,
    store: Optional[KnowledgeGraphStore] = None,
) -> BuildResult:
    """Route a prompt to its handler using the rule-based command detector."""
    command = detect_command_type(prompt)

    if command == "create" or current_spec is None or not current_spec.nodes:
        if command == "query":
            return handle_query(prompt, current_spec)
        return handle_create(prompt, options, store)
    if command == "query":
        return handle_query(prompt, current_spec)

    # "add a link between A and B" names two existing nodes and nothing new
    if command == "add" and re.search(r"연결|\b(connect|link|connection)\b", prompt, re.I):
        named = _referenced_nodes(prompt, current_spec)
        mentioned = {m.type for m in detect_mentions(prompt.lower())}
        if len(named) >= 2 and mentioned <= current_spec.node_types():
            command = "connect"

    logger.debug("Command for prompt: %s", command)
    return HANDLERS[command](prompt, current_spec, store=store)


def apply_intent(
    intent: IntentAnalysis,
    prompt: str,
    current_spec: Optional[InfraSpec],
    options: Optional[BuildOptions] = None,
    store: Optional[KnowledgeGraphStore] = None,
) -> BuildResult:
    """Apply an LLM intent; a create intent without components uses the local create path."""
    action = intent.action
    if action == "query":
        return handle_query(prompt, current_spec)
    if action == "create" or current_spec is None or not current_spec.nodes:
        result = build_from_intent(intent, store) if action in ("create", "add") else None
        return result or handle_create(prompt, options, store)
    return HANDLERS[action](prompt, current_spec, intent=intent, store=store)
