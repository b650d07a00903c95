"""
Template catalog - predefined InfraSpecs for common architectures.

Two groups:
- INFRA_TEMPLATES: rich templates selected by keyword (match_template)
- FALLBACK_TEMPLATES: small set used by match_fallback_template, which is
  total and always returns a spec
"""

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from infraflow.spec.model import InfraSpec

logger = logging.getLogger(__name__)


@dataclass
class InfraTemplate:
    """A named, keyword-addressable InfraSpec"""
    id: str
    name: str
    description: str
    keywords: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def spec(self) -> InfraSpec:
        return _template_spec(self.id)


def _n(id_: str, type_: str, label: str, zone: Optional[str] = None) -> Dict[str, Any]:
    node = {"id": id_, "type": type_, "label": label}
    if zone:
        node["zone"] = zone
    return node


def _e(source: str, target: str, flow: Optional[str] = "request", label: Optional[str] = None) -> Dict[str, Any]:
    conn = {"source": source, "target": target}
    if flow:
        conn["flowType"] = flow
    if label:
        conn["label"] = label
    return conn


def _z(id_: str, label: str, tier: str) -> Dict[str, Any]:
    return {"id": id_, "label": label, "type": tier}


# ============================================================
# INFRA TEMPLATES (ordered: first keyword hit wins)
# ============================================================

TEMPLATE_CATALOG: List[InfraTemplate] = [
    InfraTemplate(
        id="3tier",
        name="3티어 웹 아키텍처",
        description="CDN, 방화벽, WAF, 로드밸런서 뒤에 웹/앱 서버를 이중화하고 DB를 분리한 구성입니다.",
        keywords=["3티어", "3-tier", "3tier", "웹 아키텍처", "web architecture", "3계층"],
        data={
            "nodes": [
                _n("user", "user", "User"),
                _n("cdn", "cdn", "CDN", "external"),
                _n("firewall", "firewall", "Firewall", "dmz"),
                _n("waf", "waf", "WAF", "dmz"),
                _n("lb", "load-balancer", "Load Balancer", "dmz"),
                _n("web1", "web-server", "Web Server 1", "web"),
                _n("web2", "web-server", "Web Server 2", "web"),
                _n("app1", "app-server", "App Server 1", "app"),
                _n("app2", "app-server", "App Server 2", "app"),
                _n("db", "db-server", "Database", "db"),
            ],
            "connections": [
                _e("user", "cdn"), _e("cdn", "firewall"), _e("firewall", "waf"),
                _e("waf", "lb"), _e("lb", "web1"), _e("lb", "web2"),
                _e("web1", "app1"), _e("web2", "app2"),
                _e("app1", "db"), _e("app2", "db"),
            ],
            "zones": [
                _z("external", "External", "external"), _z("dmz", "DMZ", "dmz"),
                _z("web", "Web Tier", "internal"), _z("app", "App Tier", "internal"),
                _z("db", "DB Tier", "data"),
            ],
        },
    ),
    InfraTemplate(
        id="vpn",
        name="VPN 원격 접속",
        description="원격 사용자가 VPN 게이트웨이와 내부 방화벽을 거쳐 내부 서버에 접근하는 구성입니다.",
        keywords=["vpn", "내부망", "internal network", "원격 접속", "remote access", "사내망"],
        data={
            "nodes": [
                _n("user", "user", "Remote User"),
                _n("internet", "internet", "Internet", "external"),
                _n("vpn", "vpn-gateway", "VPN Gateway", "dmz"),
                _n("firewall", "firewall", "Internal Firewall", "dmz"),
                _n("router", "router", "Core Router", "internal"),
                _n("server1", "app-server", "Internal Server 1", "internal"),
                _n("server2", "app-server", "Internal Server 2", "internal"),
                _n("ldap", "ldap-ad", "LDAP/AD", "internal"),
            ],
            "connections": [
                _e("user", "internet", "encrypted"), _e("internet", "vpn", "encrypted"),
                _e("vpn", "firewall"), _e("firewall", "router"),
                _e("router", "server1"), _e("router", "server2"),
                _e("vpn", "ldap", "request", "Auth"),
            ],
            "zones": [
                _z("external", "External", "external"), _z("dmz", "DMZ", "dmz"),
                _z("internal", "Internal Network", "internal"),
            ],
        },
    ),
    InfraTemplate(
        id="k8s",
        name="쿠버네티스 클러스터",
        description="인그레스를 통해 서비스와 파드로 요청이 전달되고 영구 볼륨과 DB를 사용하는 구성입니다.",
        keywords=["kubernetes", "k8s", "쿠버네티스", "container", "컨테이너", "pod"],
        data={
            "nodes": [
                _n("user", "user", "User"),
                _n("ingress", "load-balancer", "Ingress Controller", "k8s"),
                _n("svc", "kubernetes", "Service", "k8s"),
                _n("pod1", "container", "Pod 1", "k8s"),
                _n("pod2", "container", "Pod 2", "k8s"),
                _n("pod3", "container", "Pod 3", "k8s"),
                _n("pv", "storage", "Persistent Volume", "storage"),
                _n("db", "db-server", "Database", "storage"),
            ],
            "connections": [
                _e("user", "ingress"), _e("ingress", "svc"),
                _e("svc", "pod1"), _e("svc", "pod2"), _e("svc", "pod3"),
                _e("pod1", "pv", "sync"), _e("pod2", "db"),
            ],
            "zones": [
                _z("k8s", "Kubernetes Cluster", "internal"), _z("storage", "Storage Layer", "data"),
            ],
        },
    ),
    InfraTemplate(
        id="simple-waf",
        name="WAF + 로드밸런서",
        description="WAF와 로드밸런서 뒤에 웹 서버 두 대를 둔 기본 웹 서비스 구성입니다.",
        keywords=["waf", "로드밸런서", "load balancer", "웹서버", "web server"],
        data={
            "nodes": [
                _n("user", "user", "User"),
                _n("waf", "waf", "WAF", "dmz"),
                _n("lb", "load-balancer", "Load Balancer", "dmz"),
                _n("web1", "web-server", "Web Server 1", "web"),
                _n("web2", "web-server", "Web Server 2", "web"),
            ],
            "connections": [
                _e("user", "waf"), _e("waf", "lb"), _e("lb", "web1"), _e("lb", "web2"),
            ],
            "zones": [_z("dmz", "DMZ", "dmz"), _z("web", "Web Tier", "internal")],
        },
    ),
    InfraTemplate(
        id="hybrid",
        name="하이브리드 클라우드",
        description="클라우드 워크로드가 VPN으로 온프레미스 DB와 연결되는 구성입니다.",
        keywords=["hybrid", "하이브리드", "cloud", "클라우드", "aws", "azure", "on-premise"],
        data={
            "nodes": [
                _n("user", "user", "User"),
                _n("cdn", "cdn", "CDN"),
                _n("aws", "aws-vpc", "AWS VPC", "cloud"),
                _n("alb", "load-balancer", "ALB", "cloud"),
                _n("ec2", "vm", "EC2 Instance", "cloud"),
                _n("vpn", "vpn-gateway", "VPN Gateway", "hybrid"),
                _n("onprem-fw", "firewall", "On-Premise FW", "onprem"),
                _n("onprem-db", "db-server", "On-Premise DB", "onprem"),
            ],
            "connections": [
                _e("user", "cdn"), _e("cdn", "alb"), _e("alb", "ec2"),
                _e("ec2", "vpn", "encrypted"), _e("vpn", "onprem-fw", "encrypted"),
                _e("onprem-fw", "onprem-db"),
            ],
            "zones": [
                _z("cloud", "AWS Cloud", "external"), _z("hybrid", "Hybrid Connection", "dmz"),
                _z("onprem", "On-Premise", "internal"),
            ],
        },
    ),
    InfraTemplate(
        id="microservices",
        name="마이크로서비스",
        description="API 게이트웨이 뒤에 서비스별 컨테이너와 전용 DB, 메시지 큐를 둔 구성입니다.",
        keywords=["마이크로서비스", "microservice", "msa", "api gateway", "서비스 메시"],
        data={
            "nodes": [
                _n("user", "user", "User"),
                _n("api-gw", "load-balancer", "API Gateway", "gateway"),
                _n("auth-svc", "container", "Auth Service", "services"),
                _n("user-svc", "container", "User Service", "services"),
                _n("order-svc", "container", "Order Service", "services"),
                _n("payment-svc", "container", "Payment Service", "services"),
                _n("msg-queue", "cache", "Message Queue", "infra"),
                _n("user-db", "db-server", "User DB", "data"),
                _n("order-db", "db-server", "Order DB", "data"),
            ],
            "connections": [
                _e("user", "api-gw"), _e("api-gw", "auth-svc"), _e("api-gw", "user-svc"),
                _e("api-gw", "order-svc"), _e("order-svc", "msg-queue", "sync"),
                _e("msg-queue", "payment-svc", "sync"), _e("user-svc", "user-db"),
                _e("order-svc", "order-db"),
            ],
            "zones": [
                _z("gateway", "Gateway", "dmz"), _z("services", "Services", "internal"),
                _z("infra", "Infrastructure", "internal"), _z("data", "Data Layer", "data"),
            ],
        },
    ),
    InfraTemplate(
        id="zero-trust",
        name="제로 트러스트",
        description="IdP와 MFA로 인증한 뒤 ZTNA 게이트웨이와 정책 엔진을 거쳐 애플리케이션에 접근하는 구성입니다.",
        keywords=["제로트러스트", "zero trust", "ztna", "제로 트러스트", "identity"],
        data={
            "nodes": [
                _n("user", "user", "User"),
                _n("idp", "sso", "Identity Provider", "identity"),
                _n("mfa", "mfa", "MFA", "identity"),
                _n("ztna", "vpn-gateway", "ZTNA Gateway", "access"),
                _n("policy", "firewall", "Policy Engine", "access"),
                _n("dlp", "dlp", "DLP", "security"),
                _n("app", "app-server", "Application", "workload"),
                _n("data", "db-server", "Data Store", "workload"),
            ],
            "connections": [
                _e("user", "idp", "request", "1. Authenticate"),
                _e("idp", "mfa", "request", "2. MFA"),
                _e("mfa", "ztna", "encrypted", "3. Verify"),
                _e("ztna", "policy", "request", "4. Policy Check"),
                _e("policy", "dlp", "request", "5. DLP Scan"),
                _e("dlp", "app", "encrypted", "6. Access"),
                _e("app", "data", "encrypted"),
            ],
            "zones": [
                _z("identity", "Identity", "external"), _z("access", "Access Control", "dmz"),
                _z("security", "Security", "dmz"), _z("workload", "Workload", "internal"),
            ],
        },
    ),
    InfraTemplate(
        id="dr",
        name="재해복구(DR)",
        description="글로벌 DNS로 주 사이트와 DR 사이트를 전환하고 DB를 복제하는 구성입니다.",
        keywords=["dr", "disaster recovery", "재해복구", "이중화", "failover", "ha", "high availability"],
        data={
            "nodes": [
                _n("user", "user", "User"),
                _n("dns", "dns", "Global DNS", "global"),
                _n("lb-primary", "load-balancer", "Primary LB", "primary"),
                _n("app-primary", "app-server", "Primary App", "primary"),
                _n("db-primary", "db-server", "Primary DB", "primary"),
                _n("lb-dr", "load-balancer", "DR LB", "dr"),
                _n("app-dr", "app-server", "DR App", "dr"),
                _n("db-dr", "db-server", "DR DB", "dr"),
            ],
            "connections": [
                _e("user", "dns"),
                _e("dns", "lb-primary", "request", "Active"),
                _e("dns", "lb-dr", "blocked", "Standby"),
                _e("lb-primary", "app-primary"), _e("app-primary", "db-primary"),
                _e("lb-dr", "app-dr"), _e("app-dr", "db-dr"),
                _e("db-primary", "db-dr", "sync", "Replication"),
            ],
            "zones": [
                _z("global", "Global", "external"), _z("primary", "Primary Site", "internal"),
                _z("dr", "DR Site", "internal"),
            ],
        },
    ),
    InfraTemplate(
        id="api",
        name="API 백엔드",
        description="CDN, WAF, 레이트 리미터, API 게이트웨이 뒤에 API 서버와 캐시, DB를 둔 구성입니다.",
        keywords=["api", "rest", "backend", "백엔드", "restful", "graphql"],
        data={
            "nodes": [
                _n("client", "user", "API Client"),
                _n("cdn", "cdn", "CDN/Edge", "edge"),
                _n("waf", "waf", "WAF", "security"),
                _n("rate-limit", "firewall", "Rate Limiter", "security"),
                _n("api-gw", "load-balancer", "API Gateway", "gateway"),
                _n("api-v1", "app-server", "API v1", "api"),
                _n("api-v2", "app-server", "API v2", "api"),
                _n("cache", "cache", "Redis Cache", "data"),
                _n("db", "db-server", "PostgreSQL", "data"),
            ],
            "connections": [
                _e("client", "cdn"), _e("cdn", "waf"), _e("waf", "rate-limit"),
                _e("rate-limit", "api-gw"), _e("api-gw", "api-v1"), _e("api-gw", "api-v2"),
                _e("api-v1", "cache"), _e("api-v2", "cache"), _e("cache", "db"),
            ],
            "zones": [
                _z("edge", "Edge", "external"), _z("security", "Security", "dmz"),
                _z("gateway", "Gateway", "dmz"), _z("api", "API Layer", "internal"),
                _z("data", "Data Layer", "data"),
            ],
        },
    ),
    InfraTemplate(
        id="iot",
        name="IoT 플랫폼",
        description="디바이스 데이터를 게이트웨이와 MQTT 브로커로 수집해 스트림 처리 후 저장하는 구성입니다.",
        keywords=["iot", "사물인터넷", "mqtt", "sensor", "센서", "edge"],
        data={
            "nodes": [
                _n("device", "user", "IoT Device"),
                _n("gateway", "router", "IoT Gateway", "edge"),
                _n("mqtt", "cache", "MQTT Broker", "messaging"),
                _n("stream", "app-server", "Stream Processor", "processing"),
                _n("analytics", "app-server", "Analytics Engine", "processing"),
                _n("timeseries", "db-server", "TimeSeries DB", "data"),
                _n("storage", "storage", "Data Lake", "data"),
                _n("dashboard", "web-server", "Dashboard", "presentation"),
            ],
            "connections": [
                _e("device", "gateway"), _e("gateway", "mqtt", "sync"),
                _e("mqtt", "stream", "sync"), _e("stream", "timeseries"),
                _e("stream", "analytics", "sync"), _e("analytics", "storage"),
                _e("timeseries", "dashboard", "response"), _e("storage", "dashboard", "response"),
            ],
            "zones": [
                _z("edge", "Edge", "external"), _z("messaging", "Messaging", "dmz"),
                _z("processing", "Processing", "internal"), _z("data", "Data", "data"),
                _z("presentation", "Presentation", "internal"),
            ],
        },
    ),
]

TEMPLATES: Dict[str, InfraTemplate] = {t.id: t for t in TEMPLATE_CATALOG}


# ============================================================
# FALLBACK TEMPLATES
# ============================================================

FALLBACK_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "3tier": {
        "nodes": [
            _n("user", "user", "User"),
            _n("lb", "load-balancer", "Load Balancer", "dmz"),
            _n("web", "web-server", "Web Server", "internal"),
            _n("app", "app-server", "App Server", "internal"),
            _n("db", "db-server", "DB Server", "data"),
        ],
        "connections": [
            _e("user", "lb", None), _e("lb", "web", None),
            _e("web", "app", None), _e("app", "db", None),
        ],
    },
    "web-secure": {
        "nodes": [
            _n("user", "user", "User"),
            _n("fw", "firewall", "Firewall", "dmz"),
            _n("waf", "waf", "WAF", "dmz"),
            _n("lb", "load-balancer", "Load Balancer", "dmz"),
            _n("web", "web-server", "Web Server", "internal"),
            _n("db", "db-server", "DB Server", "data"),
        ],
        "connections": [
            _e("user", "fw", None), _e("fw", "waf", None), _e("waf", "lb", None),
            _e("lb", "web", None), _e("web", "db", None),
        ],
    },
    "vdi": {
        "nodes": [
            _n("user", "user", "User"),
            _n("vpn", "vpn-gateway", "VPN Gateway", "dmz"),
            _n("fw", "firewall", "Firewall", "internal"),
            _n("vdi", "vm", "VDI Server", "internal"),
            _n("ad", "ldap-ad", "Active Directory", "internal"),
            _n("storage", "storage", "Storage", "data"),
        ],
        "connections": [
            _e("user", "vpn", None), _e("vpn", "fw", None), _e("fw", "vdi", None),
            _e("vdi", "ad", None), _e("vdi", "storage", None),
        ],
    },
    "default": {
        "nodes": [
            _n("user", "user", "User"),
            _n("fw", "firewall", "Firewall", "dmz"),
            _n("server", "web-server", "Server", "internal"),
        ],
        "connections": [_e("user", "fw", None), _e("fw", "server", None)],
    },
}

# (keywords, template id) - evaluated in order, the catch-all is last
FALLBACK_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (("vdi", "가상데스크톱"), "vdi"),
    (("3티어", "3-tier", "three tier"), "3tier"),
    (("waf", "보안", "secure"), "web-secure"),
    ((), "default"),
]


@lru_cache(maxsize=None)
def _template_spec(template_id: str) -> InfraSpec:
    return InfraSpec.model_validate(TEMPLATES[template_id].data)


@lru_cache(maxsize=None)
def _fallback_spec(template_id: str) -> InfraSpec:
    return InfraSpec.model_validate(FALLBACK_TEMPLATES[template_id])


def match_fallback_template_id(prompt: Optional[str]) -> str:
    text = (prompt or "").lower()
    for keywords, template_id in FALLBACK_RULES:
        if not keywords or any(k in text for k in keywords):
            return template_id
    return "default"


def match_fallback_template(prompt: Optional[str]) -> InfraSpec:
    """
    Resolve a prompt to one of the fallback templates.

    Case-insensitive substring match against FALLBACK_RULES; the first rule
    that hits wins and the catch-all guarantees a result. Never raises.
    """
    template_id = match_fallback_template_id(prompt)
    logger.debug("Fallback template for prompt: %s", template_id)
    return _fallback_spec(template_id)


# ============================================================
# KEYWORD MATCHING
# ============================================================

def _keyword_regex(keyword: str) -> re.Pattern:
    escaped = re.escape(keyword.lower())
    if keyword.isascii():
        # ASCII keywords must not match inside other words ("dr" in "address")
        return re.compile(rf"(?<![a-z0-9]){escaped}(?![a-z0-9])")
    return re.compile(escaped)


_KEYWORD_INDEX: List[Tuple[str, re.Pattern]] = [
    (t.id, _keyword_regex(k)) for t in TEMPLATE_CATALOG for k in t.keywords
]


def match_template(prompt: str) -> Optional[InfraTemplate]:
    """First template whose keyword appears in the prompt, in catalog order."""
    text = prompt.lower()
    for template_id, regex in _KEYWORD_INDEX:
        if regex.search(text):
            return TEMPLATES[template_id]
    return None


def match_template_by_id(prompt: str) -> Optional[InfraTemplate]:
    text = prompt.lower()
    for template in TEMPLATE_CATALOG:
        if _keyword_regex(template.id).search(text):
            return template
    return None


def get_template(template_id: str) -> Optional[InfraTemplate]:
    return TEMPLATES.get(template_id)


def list_templates() -> List[Dict[str, str]]:
    return [{"id": t.id, "name": t.name, "description": t.description} for t in TEMPLATE_CATALOG]
