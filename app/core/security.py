def redact_session_id(session_id: str | None) -> str:
    """
    Redact a session id for logging purposes.
    Shows the first 14 characters followed by ***.
    """
    if not session_id:
        return "None"
    if len(session_id) <= 14:
        return session_id
    return f"{session_id[:14]}***"
