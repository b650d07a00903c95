import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from infraflow.api.dependencies import get_caller, rate_limiter
from infraflow.api.schemas import (
    DiagramUpdate,
    EnrichRequest,
    EnrichResponse,
    ModifyRequest,
    ParseRequest,
    RiskRequest,
    TemplateSummary,
)
from infraflow.db.repository import DiagramRepository, UsageLogRepository, record_to_dict
from infraflow.db.session import get_db
from infraflow.knowledge.store import get_knowledge_store
from infraflow.parser.pipeline import ParseOutcome, ParseSettings, parse_prompt
from infraflow.parser.risk import assess_change_risk
from infraflow.parser.templates import list_templates
from infraflow.prompts.enricher import build_knowledge_prompt_section, enrich_spec
from infraflow.spec.context import build_context_from_spec

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["infraflow"])


def _log_usage(db: Session, caller: str, endpoint: str, prompt: str, outcome: ParseOutcome) -> None:
    UsageLogRepository(db).append(
        caller,
        endpoint,
        prompt,
        command_type=outcome.result.command_type,
        success=outcome.result.success,
        used_llm=outcome.used_llm,
        fallback_reason=outcome.fallback_reason.value if outcome.fallback_reason else None,
    )


# ============================
# PARSE / MODIFY
# ============================

@router.post("/parse")
def parse(
    request: ParseRequest,
    caller: str = Depends(rate_limiter.check),
    db: Session = Depends(get_db),
):
    settings = ParseSettings.from_env(use_llm=request.use_llm, knowledge_section=request.knowledge_section)
    outcome = parse_prompt(request.prompt, request.current_spec, settings)
    _log_usage(db, caller, "parse", request.prompt, outcome)

    response = outcome.to_dict()
    response["knowledgeSection"] = outcome.knowledge_section
    return response


@router.post("/modify")
def modify(
    request: ModifyRequest,
    caller: str = Depends(rate_limiter.check),
    db: Session = Depends(get_db),
):
    settings = ParseSettings.from_env(use_llm=request.use_llm, knowledge_section=request.knowledge_section)
    outcome = parse_prompt(request.prompt, request.spec, settings)
    _log_usage(db, caller, "modify", request.prompt, outcome)

    response = outcome.to_dict()
    response["knowledgeSection"] = outcome.knowledge_section
    result = outcome.result
    if result.success and result.spec is not None:
        response["risk"] = assess_change_risk(request.spec, result.spec).to_dict()
    return response


# ============================
# RISK / KNOWLEDGE
# ============================

@router.post("/risk")
def risk(request: RiskRequest, caller: str = Depends(rate_limiter.check)):
    return assess_change_risk(request.before, request.after).to_dict()


@router.post("/knowledge/enrich", response_model=EnrichResponse, response_model_by_alias=True)
def knowledge_enrich(request: EnrichRequest, caller: str = Depends(rate_limiter.check)):
    store = get_knowledge_store()
    enriched = enrich_spec(request.spec, store)
    return EnrichResponse(
        context=build_context_from_spec(request.spec).to_dict(),
        enriched=enriched.to_dict(),
        prompt_section=build_knowledge_prompt_section(enriched),
        patterns=[p.id for p in store.detect_patterns(request.spec)],
    )


@router.get("/knowledge/stats")
def knowledge_stats():
    return get_knowledge_store().stats()


@router.get("/templates", response_model=list[TemplateSummary])
def templates():
    return list_templates()


# ============================
# DIAGRAM STORE
# ============================

@router.get("/diagrams/{diagram_id}")
def get_diagram(diagram_id: str, caller: str = Depends(get_caller), db: Session = Depends(get_db)):
    record = DiagramRepository(db).get(diagram_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Diagram '{diagram_id}' not found")
    return record_to_dict(record)


@router.put("/diagrams/{diagram_id}")
def put_diagram(
    diagram_id: str,
    update: DiagramUpdate,
    caller: str = Depends(rate_limiter.check),
    db: Session = Depends(get_db),
):
    repo = DiagramRepository(db)
    existing = repo.get(diagram_id)
    if existing is not None and existing.owner and existing.owner != caller:
        raise HTTPException(status_code=403, detail="Not the owner of this diagram")
    record = repo.save(diagram_id, update.spec, owner=caller, nodes_json=update.nodes_json, edges_json=update.edges_json)
    return record_to_dict(record)
