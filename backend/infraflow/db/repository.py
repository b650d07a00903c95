"""
Diagram store and usage log backed by SQLAlchemy sessions.

The core never imports this module; the API layer hands specs in and out.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from infraflow.db.models import DiagramRecord, UsageLog
from infraflow.spec.model import InfraSpec

logger = logging.getLogger(__name__)


class DiagramRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, diagram_id: str) -> Optional[DiagramRecord]:
        return self.db.get(DiagramRecord, diagram_id)

    def save(
        self,
        diagram_id: str,
        spec: InfraSpec,
        owner: Optional[str] = None,
        nodes_json: Optional[Any] = None,
        edges_json: Optional[Any] = None,
    ) -> DiagramRecord:
        record = self.get(diagram_id)
        if record is None:
            record = DiagramRecord(id=diagram_id, owner=owner)
            self.db.add(record)
        record.spec = spec.to_dict()
        if nodes_json is not None:
            record.nodes_json = nodes_json
        if edges_json is not None:
            record.edges_json = edges_json
        self.db.commit()
        self.db.refresh(record)
        logger.debug("Saved diagram %s (%d nodes)", diagram_id, len(spec.nodes))
        return record


class UsageLogRepository:
    def __init__(self, db: Session):
        self.db = db

    def append(self, caller: Optional[str], endpoint: str, prompt: Optional[str] = None, **fields: Any) -> UsageLog:
        entry = UsageLog(caller=caller, endpoint=endpoint, prompt=prompt, **fields)
        self.db.add(entry)
        self.db.commit()
        return entry

    def count(self, caller: Optional[str] = None) -> int:
        query = self.db.query(UsageLog)
        if caller is not None:
            query = query.filter(UsageLog.caller == caller)
        return query.count()


def record_to_dict(record: DiagramRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "spec": record.spec,
        "nodesJson": record.nodes_json,
        "edgesJson": record.edges_json,
        "updatedAt": record.updated_at.isoformat() if record.updated_at else None,
    }
