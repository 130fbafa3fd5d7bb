"""Clock and id generator used for identities, documents and tokens."""
import uuid
from datetime import datetime, UTC


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid.uuid4())
