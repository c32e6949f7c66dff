"""Request sent to the streaming query service."""

from dataclasses import dataclass, fields
from typing import Dict, Optional

# Keys used on the wire for each field
_WIRE_KEYS = {
    "query": "query",
    "tenant_id": "tenantId",
    "api_key": "apiKey",
    "project_id": "projectId",
    "provider": "provider",
    "model": "model",
    "session_id": "sessionId",
}


@dataclass(frozen=True)
class QueryRequest:
    """A single query and the routing/auth fields that go with it.

    The routing and auth fields are not interpreted here; they are
    forwarded to the service as they are.
    """

    query: str
    tenant_id: Optional[str] = None
    api_key: Optional[str] = None
    project_id: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    session_id: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.query, str) or not self.query.strip():
            raise ValueError("Query must be a non-empty string")

    def to_payload(self) -> Dict[str, str]:
        """Build the JSON body of the request. Unset fields are omitted."""
        payload = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                payload[_WIRE_KEYS[f.name]] = value
        return payload
