from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from infraflow.spec.model import InfraSpec


class ParseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., min_length=1, max_length=4000)
    current_spec: Optional[InfraSpec] = Field(default=None, alias="currentSpec")
    use_llm: bool = Field(default=True, alias="useLlm")
    # guidance returned by the previous parse
    knowledge_section: str = Field(default="", alias="knowledgeSection")


class ModifyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., min_length=1, max_length=4000)
    spec: InfraSpec
    use_llm: bool = Field(default=True, alias="useLlm")
    knowledge_section: str = Field(default="", alias="knowledgeSection")


class RiskRequest(BaseModel):
    before: InfraSpec
    after: InfraSpec


class EnrichRequest(BaseModel):
    spec: InfraSpec


class DiagramUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    spec: InfraSpec
    nodes_json: Optional[Any] = Field(default=None, alias="nodesJson")
    edges_json: Optional[Any] = Field(default=None, alias="edgesJson")


class TemplateSummary(BaseModel):
    id: str
    name: str
    description: str


class EnrichResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    context: Dict[str, Any]
    enriched: Dict[str, Any]
    prompt_section: str = Field(alias="promptSection")
    patterns: List[str] = []
