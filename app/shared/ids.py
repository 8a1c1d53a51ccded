import re
import time
import uuid

SESSION_ID_PATTERN = re.compile(r"session_\d{1,16}_[0-9a-f]{9}")


def new_session_id() -> str:
    """Opaque, non-identifying session id: session_<epoch ms>_<9 random hex chars>."""
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def is_session_id(value: str) -> bool:
    """True if value has the shape of an id issued by new_session_id."""
    return bool(SESSION_ID_PATTERN.fullmatch(value))


def format_record_id(session_id: str, sequence: int) -> str:
    """Record id that sorts in capture order within a session.

    Returns "<session_id>:<zero padded sequence>"
    """
    return f"{session_id}:{sequence:010d}"
