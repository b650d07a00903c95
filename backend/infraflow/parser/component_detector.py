"""
Rule-based detection - component types, command type and position hints
from free text (Korean and English).

English alternatives only match on word boundaries, so "add" is not an
"ad" (Active Directory) and "that" is not an "ha". Korean alternatives
match as substrings since particles attach directly to nouns.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from infraflow.parser.topology import chain_connections
from infraflow.spec.catalog import label_for_type
from infraflow.spec.model import InfraNode, InfraSpec

logger = logging.getLogger(__name__)


def _rx(english: Sequence[str] = (), korean: Sequence[str] = ()) -> re.Pattern:
    parts = [rf"(?<![a-z0-9]){alt}(?![a-z0-9])" for alt in english]
    parts.extend(korean)
    return re.compile("|".join(f"(?:{p})" for p in parts), re.IGNORECASE)


@dataclass(frozen=True)
class NodeTypePattern:
    type: str
    pattern: re.Pattern
    label_ko: str

    @property
    def label(self) -> str:
        return label_for_type(self.type)


@dataclass(frozen=True)
class Mention:
    type: str
    start: int
    end: int


# ============================================================
# NODE TYPE PATTERNS (order matters for detect_node_type)
# ============================================================

NODE_TYPE_PATTERNS: List[NodeTypePattern] = [
    # External
    NodeTypePattern("user", _rx(["users?", "clients?", "end ?users?"], ["사용자", "유저", "클라이언트"]), "사용자"),
    NodeTypePattern("internet", _rx(["internet", "public network"], ["인터넷", "외부망"]), "인터넷"),
    # Security
    NodeTypePattern("waf", _rx(["wafs?", "web application firewall"], ["웹 ?방화벽", "웹 ?애플리케이션 ?방화벽"]), "웹방화벽"),
    NodeTypePattern(
        "firewall",
        _rx([r"(?<!application )firewalls?", "fw"], [r"(?<!웹)(?<!웹 )(?<!애플리케이션 )(?<!애플리케이션)방화벽"]),
        "방화벽",
    ),
    NodeTypePattern("ids-ips", _rx(["ids", "ips", "ids/ips", "intrusion (?:detection|prevention)"], ["침입.*탐지", "침입.*방지"]), "IDS/IPS"),
    NodeTypePattern("vpn-gateway", _rx(["vpns?", "vpn[ -]gateways?"], ["가상사설망"]), "VPN 게이트웨이"),
    NodeTypePattern("nac", _rx(["nac", "network access control"], ["네트워크.*접근.*제어"]), "NAC"),
    NodeTypePattern("dlp", _rx(["dlp", "data loss prevention"], ["데이터.*유출.*방지", "정보.*유출.*방지"]), "DLP"),
    # Network
    NodeTypePattern("cdn", _rx(["cdns?", "content delivery"], []), "CDN"),
    NodeTypePattern("load-balancer", _rx(["load[ -]?balancers?", "lbs?", "alb", "nlb"], ["로드 ?밸런서", "부하 ?분산"]), "로드밸런서"),
    NodeTypePattern("router", _rx(["routers?"], ["라우터"]), "라우터"),
    NodeTypePattern(
        "switch-l3",
        _rx([r"switch(?:es)? ?-?l3", r"l3 ?-?switch(?:es)?", "layer ?3 switch"], ["l3 ?스위치", "스위치.*l3", "레이어 ?3"]),
        "L3 스위치",
    ),
    NodeTypePattern(
        "switch-l2",
        _rx([r"(?<!l3 )(?<!l3-)(?<!l3)switch(?:es)?(?! ?-?l3)"], [r"(?<!l3 )(?<!l3)스위치(?!.*l3)"]),
        "L2 스위치",
    ),
    NodeTypePattern("sd-wan", _rx(["sd-?wan", "software defined wan"], []), "SD-WAN"),
    NodeTypePattern("dns", _rx(["dns", "domain name"], ["도메인.*네임"]), "DNS"),
    # Compute
    NodeTypePattern("web-server", _rx(["web[ -]?servers?", "nginx", "apache"], ["웹 ?서버"]), "웹서버"),
    NodeTypePattern(
        "app-server",
        _rx(["app[ -]?servers?", "application servers?", "tomcat"], ["앱 ?서버", "애플리케이션 ?서버", "(?<![a-z])was(?= ?[가-힣])"]),
        "앱서버",
    ),
    NodeTypePattern(
        "db-server",
        _rx(["dbs?", "databases?", "db[ -]?servers?", "mysql", "postgres(?:ql)?", "oracle", "mongodb"], ["데이터베이스", "디비"]),
        "데이터베이스",
    ),
    NodeTypePattern("kubernetes", _rx(["kubernetes", "k8s"], ["쿠버네티스"]), "쿠버네티스"),
    NodeTypePattern("container", _rx(["containers?", "docker"], ["컨테이너", "도커"]), "컨테이너"),
    NodeTypePattern("vm", _rx(["vms?", "virtual machines?"], ["가상 ?머신", "가상 ?서버"]), "가상머신"),
    # Cloud
    NodeTypePattern("aws-vpc", _rx(["aws vpc", "vpc"], []), "AWS VPC"),
    NodeTypePattern("azure-vnet", _rx(["azure vnet", "vnet"], []), "Azure VNet"),
    NodeTypePattern("gcp-network", _rx(["gcp", "google cloud"], []), "GCP 네트워크"),
    NodeTypePattern("private-cloud", _rx(["private cloud"], ["사설 ?클라우드", "프라이빗 ?클라우드"]), "프라이빗 클라우드"),
    # Storage
    NodeTypePattern("san-nas", _rx(["san", "nas", "san/nas", "network storage"], ["네트워크 ?스토리지"]), "SAN/NAS"),
    NodeTypePattern("object-storage", _rx(["object[ -]?storage", "s3"], ["오브젝트 ?스토리지"]), "오브젝트 스토리지"),
    NodeTypePattern("backup", _rx(["backups?"], ["백업"]), "백업"),
    NodeTypePattern("cache", _rx(["cache", "caching", "redis", "memcached"], ["캐시"]), "캐시"),
    NodeTypePattern(
        "storage",
        _rx([r"(?<!object )(?<!object-)(?<!object)(?<!network )storage"], [r"(?<!오브젝트 )(?<!오브젝트)(?<!네트워크 )(?<!네트워크)스토리지", "저장소"]),
        "스토리지",
    ),
    # Auth
    NodeTypePattern("ldap-ad", _rx(["ldap", "ad", "active directory"], ["액티브 ?디렉토리"]), "LDAP/AD"),
    NodeTypePattern("sso", _rx(["sso", "single sign[- ]on"], ["싱글 ?사인온", "통합 ?인증"]), "SSO"),
    NodeTypePattern("mfa", _rx(["mfa", "2fa", "multi[- ]factor"], ["다중 ?인증", "2단계 ?인증"]), "MFA"),
    NodeTypePattern("iam", _rx(["iam", "identity (?:and )?access"], []), "IAM"),
]


def detect_node_type(text: str) -> Optional[NodeTypePattern]:
    """First pattern (in table order) that matches the text."""
    for p in NODE_TYPE_PATTERNS:
        if p.pattern.search(text):
            return p
    return None


def detect_all_node_types(text: str) -> List[NodeTypePattern]:
    return [p for p in NODE_TYPE_PATTERNS if p.pattern.search(text)]


def detect_mentions(text: str) -> List[Mention]:
    """One Mention per detected type at its first occurrence, in text order."""
    mentions = []
    for p in NODE_TYPE_PATTERNS:
        m = p.pattern.search(text)
        if m:
            mentions.append(Mention(type=p.type, start=m.start(), end=m.end()))
    return sorted(mentions, key=lambda m: (m.start, -m.end))


# ============================================================
# COMMAND TYPES
# ============================================================

COMMAND_PATTERNS: List[Tuple[re.Pattern, str]] = [
    # Disconnect before remove/connect: "연결 삭제" must not delete nodes
    (re.compile(r"연결.*(해제|끊|삭제|제거)|끊어|\b(disconnect|unlink)\b|\b(remove|delete)\s+(the\s+)?(connection|link|edge)", re.I), "disconnect"),
    # Add
    (re.compile(r"^(추가|붙여|넣어|더해)|^(add|insert|append|include)\b", re.I), "add"),
    (re.compile(r"(추가해줘|추가해|추가|붙여줘|넣어줘|더해줘)[.!]?$", re.I), "add"),
    # Remove
    (re.compile(r"^(삭제|제거|없애|빼)|^(remove|delete|drop)\b", re.I), "remove"),
    (re.compile(r"(삭제해줘|삭제해|삭제|제거해줘|제거해|제거|없애줘|빼줘)[.!]?$", re.I), "remove"),
    # Modify
    (re.compile(r"^(수정|변경|바꿔|이동)|^(modify|change|update|rename|move|replace)\b", re.I), "modify"),
    (re.compile(r"(수정해줘|수정해|변경해줘|변경해|바꿔줘|옮겨줘|이동해줘)[.!]?$", re.I), "modify"),
    # Bare position words mean an insertion
    (re.compile(r"앞에|뒤에|사이에|위에|아래에", re.I), "add"),
    # Connect
    (re.compile(r"연결|\b(connect|link)\b", re.I), "connect"),
    # Query
    (re.compile(r"\?$|뭐야|뭔가요|알려줘|설명해|^(what|why|how|explain|describe)\b", re.I), "query"),
]


def detect_command_type(text: str) -> str:
    normalized = text.strip().lower()
    for pattern, command in COMMAND_PATTERNS:
        if pattern.search(normalized):
            return command
    return "create"


# ============================================================
# POSITION HINTS
# ============================================================

@dataclass
class PositionHint:
    type: str  # before | after | between | start | end
    reference: Optional[str] = None
    reference_second: Optional[str] = None
    span: Tuple[int, int] = (0, 0)


_REF = r"((?:[\w\-/]+\s+)?[\w\-/]+?)"
_REF_EN = r"(?:the\s+)?([\w\-/]+(?:\s+(?:server|balancer|gateway|switch|storage|firewall))?)"

_POSITION_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"([\w\-/]+?)\s*(?:와|과|랑|하고)\s*([\w\-/]+?)\s*(?:의\s*)?사이에", re.I), "between"),
    (re.compile(rf"between\s+{_REF_EN}\s+and\s+{_REF_EN}", re.I), "between"),
    (re.compile(rf"{_REF}\s*(?:의\s*)?(?:뒤에|뒤로|다음에|다음으로)", re.I), "after"),
    (re.compile(rf"(?:after|behind|following)\s+{_REF_EN}", re.I), "after"),
    (re.compile(rf"{_REF}\s*(?:의\s*)?(?:앞에|앞으로|이전에)", re.I), "before"),
    (re.compile(rf"(?:before|in front of|ahead of)\s+{_REF_EN}", re.I), "before"),
    (re.compile(r"맨\s*앞|처음에|at the (?:start|beginning)|at the front", re.I), "start"),
    (re.compile(r"맨\s*(?:뒤|끝)|마지막에|at the end", re.I), "end"),
]

_PARTICLES = re.compile(r"(을|를|은|는|의)$")


def _clean_reference(ref: Optional[str]) -> Optional[str]:
    if ref is None:
        return None
    ref = ref.strip()
    words = ref.split()
    # "waf를 firewall" -> the reference is the word nearest the position word
    if len(words) > 1 and _PARTICLES.search(words[0]):
        ref = " ".join(words[1:])
    return _PARTICLES.sub("", ref) or ref


def find_position_hint(text: str) -> Optional[PositionHint]:
    for pattern, kind in _POSITION_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        groups = [g for g in m.groups() if g]
        return PositionHint(
            type=kind,
            reference=_clean_reference(groups[0]) if groups else None,
            reference_second=_clean_reference(groups[1]) if len(groups) > 1 else None,
            span=m.span(),
        )
    return None


def resolve_reference(spec: InfraSpec, reference: Optional[str]) -> Optional[InfraNode]:
    """Map a free-text reference to a node: by id, then label, then type."""
    if not reference or not spec.nodes:
        return None
    ref = reference.strip().lower()

    for node in spec.nodes:
        if node.id.lower() == ref:
            return node
    for node in spec.nodes:
        if node.label.lower() == ref:
            return node
    for node in spec.nodes:
        if node.type == ref:
            return node
    for mention in reversed(detect_mentions(ref)):
        candidates = spec.nodes_of_type(mention.type)
        if candidates:
            return candidates[0]
    return None


# ============================================================
# CUSTOM PROMPT -> SPEC
# ============================================================

def parse_custom_prompt(text: str) -> Optional[InfraSpec]:
    """
    Build a spec from detected component types alone.

    A user node is prepended unless the prompt already names an entry point.
    Returns None when no component type is detected.
    """
    detected = detect_all_node_types(text)
    if not detected:
        return None

    types = [p.type for p in detected]
    if "user" not in types and "internet" not in types:
        types.insert(0, "user")

    spec = InfraSpec.empty()
    for node_type in types:
        spec = spec.with_node(InfraNode(id=spec.next_node_id(node_type), type=node_type))

    for conn in chain_connections(spec.nodes):
        spec = spec.with_connection(conn)

    logger.debug("Custom prompt detected %s", types)
    return spec
