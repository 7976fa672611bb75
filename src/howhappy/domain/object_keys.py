"""Deterministic object naming for response audio."""


def audio_object_key(survey_id: str, response_id: str, extension: str = "webm") -> str:
    """
    Builds the storage key for a response's audio.

    The key embeds both ids, so a token scoped to (survey_id, response_id)
    also scopes the object it implies.

    Example: surveys/3f2a.../responses/9c1b.../audio.webm
    """
    if not survey_id or not response_id:
        raise ValueError("survey_id and response_id are required")
    if "/" in survey_id or "/" in response_id:
        raise ValueError("ids must not contain '/'")
    return f"surveys/{survey_id}/responses/{response_id}/audio.{extension.lstrip('.')}"
