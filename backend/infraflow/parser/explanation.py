from typing import List, Optional

from infraflow.parser.templates import get_template
from infraflow.spec.catalog import label_ko_for_type
from infraflow.spec.model import InfraSpec


def _unique_labels(spec: InfraSpec) -> List[str]:
    """Korean type labels in node order, one per type."""
    labels: List[str] = []
    for node in spec.nodes:
        label = label_ko_for_type(node.type)
        if label not in labels:
            labels.append(label)
    return labels


def build_explanation(spec: Optional[InfraSpec], template_used: Optional[str] = None) -> Optional[str]:
    """
    Human-readable reason for a generated diagram.

    Template hit: template name, description and components.
    Otherwise: the detected components and their count.
    None for a missing or empty spec.
    """
    if spec is None or not spec.nodes:
        return None

    labels = _unique_labels(spec)
    lines: List[str] = []

    if template_used:
        template = get_template(template_used)
        lines.append(f"「{template.name if template else template_used}」 템플릿이 적용되었습니다.")
        if template and template.description:
            lines.append(template.description)
        lines.append(f"구성: {', '.join(labels)}")
        return "\n".join(lines)

    lines.append("요청하신 내용에서 다음 구성요소를 감지하여 인프라를 생성했습니다.")
    lines.append(f"구성: {', '.join(labels)} ({len(labels)}개 컴포넌트)")
    return "\n".join(lines)
