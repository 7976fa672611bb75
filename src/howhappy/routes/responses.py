"""Survey response endpoints."""

from fastapi import APIRouter, Body

from howhappy.dependencies import OptionalUserDep, PipelineDep, ResponseTokenDep, UserDep
from howhappy.response_models import (
    CompleteResponseRequest,
    PreparedResponseBody,
    PrepareResponseRequest,
    ResponseBody,
    ResponseListBody,
    ResponseView,
    SubmitResponseRequest,
    SubmittedResponseBody,
)

router = APIRouter(prefix="/surveys", tags=["responses"])


@router.post("/{survey_id}/responses", response_model=PreparedResponseBody, status_code=201)
def prepare_response(
    survey_id: str,
    pipeline: PipelineDep,
    user: OptionalUserDep,
    body: PrepareResponseRequest | None = Body(default=None),
) -> PreparedResponseBody:
    """
    Creates a response and returns a presigned upload URL plus a token scoped
    to that response. Anonymous respondents may leave an email.
    """
    prepared = pipeline.prepare(
        survey_id,
        actor_user_id=user.sub if user else None,
        anonymous_email=body.anonymous_email if body else None,
    )
    return PreparedResponseBody(
        response=ResponseView.from_record(prepared.response),
        upload_url=prepared.upload_url,
        response_token=prepared.response_token,
    )


@router.post("/{survey_id}/responses/submit", response_model=SubmittedResponseBody)
def submit_response(
    survey_id: str,
    body: SubmitResponseRequest,
    pipeline: PipelineDep,
    token: ResponseTokenDep,
) -> SubmittedResponseBody:
    """Completes the upload named in the body and returns the enqueued job id."""
    completed = pipeline.submit(survey_id, body.response_id, str(body.audio_url), token)
    return SubmittedResponseBody(
        response=ResponseView.from_record(completed.response),
        job_id=completed.job_id,
    )


@router.patch("/{survey_id}/responses/{response_id}", response_model=ResponseBody)
def complete_response(
    survey_id: str,
    response_id: str,
    body: CompleteResponseRequest,
    pipeline: PipelineDep,
    token: ResponseTokenDep,
) -> ResponseBody:
    """Marks the upload complete and starts transcription."""
    response = pipeline.complete(survey_id, response_id, str(body.audio_url), token)
    return ResponseBody(response=ResponseView.from_record(response))


@router.get("/{survey_id}/responses", response_model=ResponseListBody)
def list_responses(survey_id: str, pipeline: PipelineDep, user: UserDep) -> ResponseListBody:
    """Returns every response of a survey to its owner, newest first."""
    responses = pipeline.list_by_survey(survey_id, user.sub)
    return ResponseListBody(responses=[ResponseView.from_record(r) for r in responses])


@router.get("/{survey_id}/responses/{response_id}", response_model=ResponseBody)
def get_response(survey_id: str, response_id: str, pipeline: PipelineDep, user: UserDep) -> ResponseBody:
    response = pipeline.get_response(survey_id, response_id, user.sub)
    return ResponseBody(response=ResponseView.from_record(response))
