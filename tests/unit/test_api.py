import pytest
from fastapi.testclient import TestClient

from howhappy.config import ANALYSIS_QUEUE, TRANSCRIPTION_QUEUE
from howhappy.domain.models import JobPayload
from howhappy.main import create_app
from tests.fakes import OWNER_ID

AUDIO_URL = "http://x/a.webm"


@pytest.fixture()
def client(container):
    with TestClient(create_app(container)) as client:
        yield client


@pytest.fixture()
def owner_headers(tokens) -> dict[str, str]:
    return _bearer(tokens.issue_user_token(OWNER_ID))


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _prepare(client, survey_id: str) -> dict:
    response = client.post(f"/surveys/{survey_id}/responses")
    assert response.status_code == 201
    return response.json()


def _complete(client, survey_id: str, prepared: dict, token: str | None = None):
    response_id = prepared["response"]["id"]
    return client.patch(
        f"/surveys/{survey_id}/responses/{response_id}",
        json={"audioUrl": AUDIO_URL},
        headers=_bearer(token or prepared["responseToken"]),
    )


class TestResponseLifecycle:
    def test_prepare_returns_upload_url_and_token(self, client, survey) -> None:
        body = _prepare(client, survey.id)

        assert body["response"]["uploadState"] == "PREPARED"
        assert body["response"]["transcriptionStatus"] == "PENDING"
        assert body["uploadUrl"]
        assert body["responseToken"]

    def test_complete_enqueues_transcription(self, client, survey, queue) -> None:
        prepared = _prepare(client, survey.id)

        response = _complete(client, survey.id, prepared)

        assert response.status_code == 200
        body = response.json()["response"]
        assert body["uploadState"] == "COMPLETED"
        assert body["audioUrl"] == AUDIO_URL
        assert queue.jobs(TRANSCRIPTION_QUEUE) == [
            {"response_id": prepared["response"]["id"], "survey_id": survey.id}
        ]

    def test_repeated_complete_is_identical_and_enqueues_once(self, client, survey, queue) -> None:
        prepared = _prepare(client, survey.id)

        first = _complete(client, survey.id, prepared)
        second = _complete(client, survey.id, prepared)

        assert second.status_code == 200
        assert second.json() == first.json()
        assert len(queue.jobs(TRANSCRIPTION_QUEUE)) == 1

    def test_transcription_then_owner_reads_result(
        self, client, container, survey, queue, owner_headers
    ) -> None:
        prepared = _prepare(client, survey.id)
        _complete(client, survey.id, prepared)
        response_id = prepared["response"]["id"]

        result = container.transcription_handler().process(
            JobPayload(response_id=response_id, survey_id=survey.id)
        )

        assert result.success
        body = client.get(f"/surveys/{survey.id}/responses/{response_id}", headers=owner_headers).json()
        assert body["response"]["transcriptionStatus"] == "COMPLETED"
        assert body["response"]["transcription"]
        assert queue.jobs(ANALYSIS_QUEUE) == [{"response_id": response_id, "survey_id": survey.id}]

    def test_submit_returns_job_id(self, client, survey, queue) -> None:
        prepared = _prepare(client, survey.id)

        response = client.post(
            f"/surveys/{survey.id}/responses/submit",
            json={"responseId": prepared["response"]["id"], "audioUrl": AUDIO_URL},
            headers=_bearer(prepared["responseToken"]),
        )

        assert response.status_code == 200
        assert response.json()["jobId"] == queue.published[0][2]

    def test_owner_lists_responses(self, client, survey, owner_headers) -> None:
        _prepare(client, survey.id)
        response = client.get(f"/surveys/{survey.id}/responses", headers=owner_headers)
        assert response.status_code == 200
        assert len(response.json()["responses"]) == 1

    def test_signed_in_respondent_is_linked(self, client, survey, tokens) -> None:
        response = client.post(
            f"/surveys/{survey.id}/responses",
            json={"anonymousEmail": "respondent@howhappy.io"},
            headers=_bearer(tokens.issue_user_token("user-9")),
        )
        body = response.json()["response"]
        assert body["registeredUserId"] == "user-9"
        assert body["anonymousEmail"] is None


class TestAuthorization:
    def test_token_for_other_response_is_forbidden(self, client, survey) -> None:
        target = _prepare(client, survey.id)
        other = _prepare(client, survey.id)

        response = _complete(client, survey.id, target, token=other["responseToken"])

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "forbidden"

    def test_submit_for_other_response_is_forbidden(self, client, survey) -> None:
        target = _prepare(client, survey.id)
        other = _prepare(client, survey.id)

        response = client.post(
            f"/surveys/{survey.id}/responses/submit",
            json={"responseId": target["response"]["id"], "audioUrl": AUDIO_URL},
            headers=_bearer(other["responseToken"]),
        )

        assert response.status_code == 403

    def test_non_owner_get_is_not_found(self, client, survey, tokens) -> None:
        response_id = _prepare(client, survey.id)["response"]["id"]

        response = client.get(
            f"/surveys/{survey.id}/responses/{response_id}",
            headers=_bearer(tokens.issue_user_token("intruder")),
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"

    def test_non_owner_list_is_forbidden(self, client, survey, tokens) -> None:
        response = client.get(
            f"/surveys/{survey.id}/responses",
            headers=_bearer(tokens.issue_user_token("intruder")),
        )
        assert response.status_code == 403

    def test_user_token_on_response_route_is_unauthorized(self, client, survey, owner_headers) -> None:
        prepared = _prepare(client, survey.id)
        response_id = prepared["response"]["id"]

        response = client.patch(
            f"/surveys/{survey.id}/responses/{response_id}",
            json={"audioUrl": AUDIO_URL},
            headers=owner_headers,
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthorized"

    def test_response_token_on_owner_route_is_unauthorized(self, client, survey) -> None:
        prepared = _prepare(client, survey.id)
        response = client.get(
            f"/surveys/{survey.id}/responses", headers=_bearer(prepared["responseToken"])
        )
        assert response.status_code == 401

    def test_missing_bearer_is_unauthorized(self, client, survey) -> None:
        prepared = _prepare(client, survey.id)
        response = client.patch(
            f"/surveys/{survey.id}/responses/{prepared['response']['id']}",
            json={"audioUrl": AUDIO_URL},
        )
        assert response.status_code == 401

    def test_garbage_token_is_unauthorized(self, client, survey) -> None:
        response = client.get(f"/surveys/{survey.id}/responses", headers=_bearer("garbage"))
        assert response.status_code == 401


class TestErrors:
    def test_unknown_survey(self, client) -> None:
        response = client.post("/surveys/missing/responses")
        assert response.status_code == 404
        assert response.json() == {"error": {"code": "not_found", "message": "Survey not found"}}
        assert "Retry-After" not in response.headers

    def test_invalid_email(self, client, survey) -> None:
        response = client.post(
            f"/surveys/{survey.id}/responses", json={"anonymousEmail": "not-an-email"}
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"
        assert "anonymousEmail" in response.json()["error"]["message"]

    def test_invalid_audio_url(self, client, survey) -> None:
        prepared = _prepare(client, survey.id)
        response = client.patch(
            f"/surveys/{survey.id}/responses/{prepared['response']['id']}",
            json={"audioUrl": "not a url"},
            headers=_bearer(prepared["responseToken"]),
        )
        assert response.status_code == 422

    def test_publish_failure_is_internal_error(self, client, survey, queue, responses) -> None:
        prepared = _prepare(client, survey.id)
        queue.fail_publish = True

        response = _complete(client, survey.id, prepared)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_error"
        assert response.headers["Retry-After"] == "5"
        assert responses.find_by_id(prepared["response"]["id"]).upload_state == "COMPLETED"


class TestHealth:
    def test_health(self, client) -> None:
        assert client.get("/health").json() == {"status": "ok"}
