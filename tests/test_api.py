"""HTTP-level tests: routing, status codes and JSON shapes.

The database is the in-memory SQLite engine from conftest; Redis, the
report pipeline and Resend are replaced through FastAPI dependency
overrides.
"""
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from httpx import ASGITransport, AsyncClient

from app.database import get_db
from app.errors import EmailDeliveryError
from app.main import app
from app.models import Company, CompanySize, CompanyType, Industry
from app.services.company_cache import CompanyCache, get_company_cache
from app.services.email_service import EmailResult, get_email_service
from app.services.report_service import get_report_service

API = "/api/v1"


@pytest_asyncio.fixture
async def client(session_factory, sample_form, fake_redis):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    cache = CompanyCache(redis_client=fake_redis)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_company_cache] = lambda: cache

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def _company_payload(sample_form, **overrides):
    payload = {
        "formId": sample_form.form.id,
        "name": "Beta Logistics",
        "industry": "technology",
        "size": "small",
        "imageURL": "https://example.com/b.png",
        "type": "client",
        "partnerId": sample_form.partner.id,
    }
    payload.update(overrides)
    return payload


class TestHealth:
    @pytest.mark.asyncio
    async def test_liveness(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestCompleteSubmission:
    @pytest.mark.asyncio
    async def test_created_with_invalid_ids_reported(self, client, sample_form):
        q = sample_form.questions
        response = await client.post(
            f"{API}/submissions/complete",
            json={
                "companyName": "Acme Retail",
                "answers": [
                    {"questionId": q["goals"].id, "value": "Grow revenue"},
                    {"questionId": q["tools"].id, "value": ["Email", "CRM"]},
                    {"questionId": 99999, "value": "ignored"},
                ],
            },
        )
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Form submission saved successfully"
        assert body["data"]["invalidQuestionIds"] == [99999]
        assert body["data"]["submission"]["companyId"] == sample_form.client.id
        assert sorted(a["value"] for a in body["data"]["answers"]) == ["CRM", "Email", "Grow revenue"]

    @pytest.mark.asyncio
    async def test_legacy_form_data(self, client, sample_form):
        goals_id = sample_form.questions["goals"].id
        response = await client.post(
            f"{API}/submissions/complete",
            json={
                "companyName": "Acme Retail",
                "formData": {
                    f"question_{goals_id}": "Scale",
                    "question_99999999999999999999": "x",
                    "email": "x",
                },
            },
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert [a["questionId"] for a in data["answers"]] == [goals_id]
        assert data["invalidQuestionIds"] == [99999999999999999999]
        assert "invalid_question_ids" not in data

    @pytest.mark.asyncio
    async def test_no_questions(self, client):
        response = await client.post(
            f"{API}/submissions/complete", json={"companyName": "Acme Retail", "answers": []}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "NO_QUESTIONS_FOUND"

    @pytest.mark.asyncio
    async def test_no_valid_answers(self, client, sample_form):
        response = await client.post(
            f"{API}/submissions/complete",
            json={
                "companyName": "Acme Retail",
                "answers": [{"questionId": sample_form.questions["foreign"].id, "value": "x"}],
            },
        )
        assert response.status_code == 400
        assert response.json()["code"] == "NO_VALID_ANSWERS"

    @pytest.mark.asyncio
    async def test_unknown_company(self, client):
        response = await client.post(
            f"{API}/submissions/complete",
            json={"companyName": "Nobody Inc", "answers": [{"questionId": 1, "value": "x"}]},
        )
        assert response.status_code == 404
        assert response.json()["code"] == "COMPANY_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_company_required(self, client):
        response = await client.post(f"{API}/submissions/complete", json={"answers": []})
        assert response.status_code == 422


class TestCompanies:
    @pytest.mark.asyncio
    async def test_create_and_paginate(self, client, sample_form):
        response = await client.post(f"{API}/companies/", json=_company_payload(sample_form))
        assert response.status_code == 201
        assert response.json()["imageURL"] == "https://example.com/b.png"

        page = await client.get(f"{API}/companies/", params={"limit": 2, "page": 1})
        assert page.status_code == 200
        meta = page.json()["pagination"]
        assert meta == {
            "page": 1,
            "limit": 2,
            "totalCount": 3,
            "totalPages": 2,
            "hasNext": True,
            "hasPrev": False,
        }
        # Newest first by default.
        assert page.json()["items"][0]["name"] == "Beta Logistics"

    @pytest.mark.asyncio
    async def test_duplicate_name(self, client, sample_form):
        response = await client.post(
            f"{API}/companies/", json=_company_payload(sample_form, name="Acme Retail")
        )
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_COMPANY_NAME"

    @pytest.mark.asyncio
    async def test_client_needs_partner(self, client, sample_form):
        payload = _company_payload(sample_form)
        del payload["partnerId"]
        response = await client.post(f"{API}/companies/", json=payload)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_partner_with_clients_cannot_be_deleted(self, client, sample_form):
        response = await client.delete(f"{API}/companies/{sample_form.partner.id}")
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_lookup_by_name(self, client, sample_form):
        response = await client.get(f"{API}/companies/names/Acme Retail")
        assert response.status_code == 200
        assert response.json()["id"] == sample_form.client.id

    @pytest.mark.asyncio
    async def test_missing_company(self, client):
        response = await client.get(f"{API}/companies/424242")
        assert response.status_code == 404
        assert response.json()["detail"] == "Company 424242 not found."

    @pytest.mark.asyncio
    async def test_id_beyond_integer_range(self, client):
        response = await client.get(f"{API}/companies/99999999999999999999")
        assert response.status_code == 404


async def _completed_submission(client, sample_form) -> int:
    response = await client.post(
        f"{API}/submissions/complete",
        json={
            "companyName": "Acme Retail",
            "answers": [{"questionId": sample_form.questions["goals"].id, "value": "Grow"}],
        },
    )
    assert response.status_code == 201
    return response.json()["data"]["submission"]["id"]


class TestAnswers:
    @pytest.mark.asyncio
    async def test_create_strips_value(self, client, sample_form):
        submission_id = await _completed_submission(client, sample_form)
        response = await client.post(
            f"{API}/answers/",
            json={
                "submissionId": submission_id,
                "questionId": sample_form.questions["crm"].id,
                "value": "  HubSpot ",
            },
        )
        assert response.status_code == 201
        assert response.json()["value"] == "HubSpot"

    @pytest.mark.asyncio
    async def test_blank_value_rejected(self, client, sample_form):
        submission_id = await _completed_submission(client, sample_form)
        response = await client.post(
            f"{API}/answers/",
            json={
                "submissionId": submission_id,
                "questionId": sample_form.questions["crm"].id,
                "value": "   ",
            },
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_question_from_another_form_rejected(self, client, sample_form):
        submission_id = await _completed_submission(client, sample_form)
        foreign_id = sample_form.questions["foreign"].id
        response = await client.post(
            f"{API}/answers/",
            json={"submissionId": submission_id, "questionId": foreign_id, "value": "x"},
        )
        assert response.status_code == 422
        assert response.json()["detail"] == (
            f"Question {foreign_id} does not belong to form {sample_form.form.id}."
        )

    @pytest.mark.asyncio
    async def test_update_to_foreign_question_rejected(self, client, sample_form):
        submission_id = await _completed_submission(client, sample_form)
        answers = await client.get(f"{API}/answers/", params={"submissionId": submission_id})
        answer_id = answers.json()["items"][0]["id"]

        response = await client.put(
            f"{API}/answers/{answer_id}",
            json={"questionId": sample_form.questions["foreign"].id},
        )
        assert response.status_code == 422

        unchanged = await client.get(f"{API}/answers/{answer_id}")
        assert unchanged.json()["questionId"] == sample_form.questions["goals"].id

    @pytest.mark.asyncio
    async def test_update_blank_value_rejected(self, client, sample_form):
        submission_id = await _completed_submission(client, sample_form)
        answers = await client.get(f"{API}/answers/", params={"submissionId": submission_id})
        answer_id = answers.json()["items"][0]["id"]

        response = await client.put(f"{API}/answers/{answer_id}", json={"value": "\t "})
        assert response.status_code == 422


class TestSubmissions:
    @pytest.mark.asyncio
    async def test_answered_submission_keeps_its_form(self, client, sample_form):
        submission_id = await _completed_submission(client, sample_form)
        other_form_id = sample_form.categories["foreign"].form_id

        response = await client.put(
            f"{API}/submissions/{submission_id}", json={"formId": other_form_id}
        )
        assert response.status_code == 409

        current = await client.get(f"{API}/submissions/{submission_id}")
        assert current.json()["formId"] == sample_form.form.id

    @pytest.mark.asyncio
    async def test_answered_submission_accepts_same_form(self, client, sample_form):
        submission_id = await _completed_submission(client, sample_form)
        response = await client.put(
            f"{API}/submissions/{submission_id}", json={"formId": sample_form.form.id}
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_empty_submission_can_move(self, client, sample_form):
        created = await client.post(
            f"{API}/submissions/",
            json={"formId": sample_form.form.id, "companyId": sample_form.client.id},
        )
        assert created.status_code == 201
        submission_id = created.json()["id"]
        other_form_id = sample_form.categories["foreign"].form_id

        response = await client.put(
            f"{API}/submissions/{submission_id}", json={"formId": other_form_id}
        )
        assert response.status_code == 200
        assert response.json()["formId"] == other_form_id


class TestClientsGrowth:
    @pytest_asyncio.fixture
    async def clients(self, db, sample_form):
        sample_form.client.created_at = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)
        db.add(
            Company(
                form_id=sample_form.form.id,
                name="Zeta Foods",
                industry=Industry.RETAIL,
                size=CompanySize.SMALL,
                image_url="https://example.com/z.png",
                type=CompanyType.CLIENT,
                partner_id=sample_form.partner.id,
                created_at=datetime(2024, 3, 2, 18, 0, tzinfo=timezone.utc),
            )
        )
        await db.commit()

    @pytest.mark.asyncio
    async def test_monthly_counts_clients_only(self, client, clients):
        response = await client.get(f"{API}/analytics/clients-growth", params={"groupBy": "month"})
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": [{"label": "2024-01", "value": 1}, {"label": "2024-03", "value": 1}],
        }

    @pytest.mark.asyncio
    async def test_yearly(self, client, clients):
        response = await client.get(f"{API}/analytics/clients-growth", params={"groupBy": "year"})
        assert response.json()["data"] == [{"label": "2024", "value": 2}]

    @pytest.mark.asyncio
    async def test_date_range_is_inclusive(self, client, clients):
        response = await client.get(
            f"{API}/analytics/clients-growth",
            params={"groupBy": "day", "startDate": "2024-02-01", "endDate": "2024-03-02"},
        )
        assert response.json()["data"] == [{"label": "2024-03-02", "value": 1}]

    @pytest.mark.asyncio
    async def test_unknown_grouping(self, client, clients):
        response = await client.get(f"{API}/analytics/clients-growth", params={"groupBy": "week"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_start_after_end(self, client, clients):
        response = await client.get(
            f"{API}/analytics/clients-growth",
            params={"startDate": "2024-05-01", "endDate": "2024-04-01"},
        )
        assert response.status_code == 422


class TestForms:
    @pytest.mark.asyncio
    async def test_structure_is_ordered(self, client, sample_form):
        response = await client.get(f"{API}/forms/{sample_form.form.id}/structure")
        assert response.status_code == 200
        categories = response.json()["categories"]
        assert [c["name"] for c in categories] == ["Operations", "Overview"]
        assert [q["text"] for q in categories[1]["questions"]] == [
            "How big is your team?",
            "What are your goals?",
        ]

    @pytest.mark.asyncio
    async def test_visibility(self, client, sample_form):
        q = sample_form.questions
        url = f"{API}/forms/{sample_form.form.id}/visibility"

        hidden = (await client.post(url, json={"answers": {}})).json()
        assert q["crm"].id in hidden["hiddenQuestionIds"]

        shown = (await client.post(url, json={"answers": {str(q["tools"].id): ["CRM"]}})).json()
        assert q["crm"].id in shown["visibleQuestionIds"]
        assert shown["hiddenQuestionIds"] == []


class TestConditionals:
    @pytest.mark.asyncio
    async def test_cycle_rejected(self, client, sample_form):
        q = sample_form.questions
        response = await client.post(
            f"{API}/question-conditionals/",
            json={
                "questionId": q["tools"].id,
                "conditionQuestionId": q["crm"].id,
                "conditionValues": ["Salesforce"],
            },
        )
        assert response.status_code == 422
        assert response.json()["code"] == "CONDITIONAL_CYCLE"

    @pytest.mark.asyncio
    async def test_self_reference_rejected(self, client, sample_form):
        qid = sample_form.questions["goals"].id
        response = await client.post(
            f"{API}/question-conditionals/",
            json={"questionId": qid, "conditionQuestionId": qid, "conditionValues": ["x"]},
        )
        assert response.status_code == 422


class TestSurveys:
    @pytest.mark.asyncio
    async def test_session(self, client, sample_form):
        response = await client.get(f"{API}/surveys/Acme Retail")
        assert response.status_code == 200
        body = response.json()
        assert body["company"]["name"] == "Acme Retail"
        assert body["form"]["id"] == sample_form.form.id

    @pytest.mark.asyncio
    async def test_unknown_company(self, client):
        response = await client.get(f"{API}/surveys/Nobody")
        assert response.status_code == 404


class TestReportsAndEmail:
    @pytest.mark.asyncio
    async def test_generate_delegates_to_pipeline(self, client):
        service = MagicMock()
        service.generate_and_dispatch = AsyncMock(
            return_value={
                "message": "Report generated and sent successfully!",
                "partnerEmailResult": {"success": True},
                "agencyEmailResult": {"success": False, "error": "Missing AGENCY_EMAIL"},
                "reportIds": [1, 2],
                "report": "# Report",
            }
        )
        app.dependency_overrides[get_report_service] = lambda: service

        response = await client.post(
            f"{API}/reports/generate", json={"submissionId": 7, "email": "p@example.com"}
        )

        assert response.status_code == 201
        assert response.json()["reportIds"] == [1, 2]
        call = service.generate_and_dispatch.await_args
        assert call.args[0] == 7
        assert call.kwargs["email"] == "p@example.com"

    @pytest.mark.asyncio
    async def test_generate_partner_email_failure(self, client):
        service = MagicMock()
        service.generate_and_dispatch = AsyncMock(side_effect=EmailDeliveryError())
        app.dependency_overrides[get_report_service] = lambda: service

        response = await client.post(f"{API}/reports/generate", json={"submissionId": 7})
        assert response.status_code == 502
        assert response.json()["code"] == "EMAIL_SEND_FAILED"

    @pytest.mark.asyncio
    async def test_send_email_failure(self, client):
        email = MagicMock()
        email.send_pdf_email = AsyncMock(return_value=EmailResult(success=False, error="boom"))
        app.dependency_overrides[get_email_service] = lambda: email

        response = await client.post(
            f"{API}/send-email",
            json={"email": "a@example.com", "text": "hello", "subject": "Hi"},
        )
        assert response.status_code == 500
        assert response.json() == {
            "detail": "There was a problem sending your email",
            "code": "EMAIL_SEND_FAILED",
        }

    @pytest.mark.asyncio
    async def test_send_email_success(self, client):
        email = MagicMock()
        email.send_pdf_email = AsyncMock(
            return_value=EmailResult(success=True, data={"attachmentName": "report.pdf"})
        )
        app.dependency_overrides[get_email_service] = lambda: email

        response = await client.post(
            f"{API}/send-email",
            json={"email": "a@example.com", "text": "hello", "subject": "Hi"},
        )
        assert response.status_code == 200
        assert response.json()["data"] == {"attachmentName": "report.pdf"}
        assert email.send_pdf_email.await_args.kwargs["attachment_name"] == "report"

    @pytest.mark.asyncio
    async def test_send_email_rejects_bad_address(self, client):
        response = await client.post(
            f"{API}/send-email", json={"email": "nope", "text": "x", "subject": "y"}
        )
        assert response.status_code == 422
