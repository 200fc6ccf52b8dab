"""Tests for SubmissionService — atomic storage of a completed audit."""
import pytest
from sqlalchemy import func, select
from unittest.mock import patch

from app.errors import (
    CompanyNotFoundError,
    FormNotFoundError,
    NoQuestionsFoundError,
    NoValidAnswersError,
)
from app.models.submission import Answer, Submission
from app.services.company_cache import CompanyCache
from app.services.form_mapper import SubmittedAnswer
from app.services.submission_service import SubmissionService


async def _count(session, model):
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.fixture
def service(fake_redis):
    return SubmissionService(company_cache=CompanyCache(redis_client=fake_redis))


class TestCompleteSubmission:
    @pytest.mark.asyncio
    async def test_stores_submission_and_answers(self, db, sample_form, service):
        q = sample_form.questions
        completed = await service.complete_submission(
            db,
            [
                SubmittedAnswer(q["tools"].id, ["Email", "CRM"]),
                SubmittedAnswer(q["size"].id, "6-20"),
            ],
            company_name="Acme Retail",
        )

        assert completed.submission.id is not None
        assert completed.submission.company_id == sample_form.client.id
        assert completed.submission.form_id == sample_form.form.id
        assert len(completed.answers) == 3
        assert all(a.submission_id == completed.submission.id for a in completed.answers)
        assert completed.invalid_question_ids == []
        assert await _count(db, Answer) == 3

    @pytest.mark.asyncio
    async def test_resolves_company_by_id(self, db, sample_form, service):
        completed = await service.complete_submission(
            db,
            [SubmittedAnswer(sample_form.questions["goals"].id, "Scale")],
            company_id=sample_form.client.id,
        )
        assert completed.submission.company_id == sample_form.client.id

    @pytest.mark.asyncio
    async def test_invalid_ids_reported_not_stored(self, db, sample_form, service):
        q = sample_form.questions
        completed = await service.complete_submission(
            db,
            [SubmittedAnswer(q["goals"].id, "Scale"), SubmittedAnswer(q["foreign"].id, "x")],
            company_name="Acme Retail",
        )
        assert completed.invalid_question_ids == [q["foreign"].id]
        assert [a.question_id for a in completed.answers] == [q["goals"].id]

    @pytest.mark.asyncio
    async def test_unknown_company(self, db, sample_form, service):
        with pytest.raises(CompanyNotFoundError):
            await service.complete_submission(
                db, [SubmittedAnswer(1, "x")], company_name="Nobody Inc"
            )

    @pytest.mark.asyncio
    async def test_unknown_explicit_form(self, db, sample_form, service):
        with pytest.raises(FormNotFoundError):
            await service.complete_submission(
                db,
                [SubmittedAnswer(sample_form.questions["goals"].id, "x")],
                company_name="Acme Retail",
                form_id=9999,
            )

    @pytest.mark.asyncio
    async def test_nothing_written_when_no_questions(self, db, sample_form, service):
        with pytest.raises(NoQuestionsFoundError):
            await service.complete_submission(db, [], company_name="Acme Retail")
        assert await _count(db, Submission) == 0

    @pytest.mark.asyncio
    async def test_nothing_written_when_all_blank(self, db, sample_form, service):
        with pytest.raises(NoValidAnswersError):
            await service.complete_submission(
                db,
                [SubmittedAnswer(sample_form.questions["goals"].id, "   ")],
                company_name="Acme Retail",
            )
        assert await _count(db, Submission) == 0
        assert await _count(db, Answer) == 0

    @pytest.mark.asyncio
    async def test_failed_answer_insert_rolls_back_submission(
        self, db, sample_form, service, session_factory
    ):
        """A failure while writing answers must not leave an orphan submission."""
        original_flush = db.flush
        calls = {"n": 0}

        async def failing_flush(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("disk full")
            return await original_flush(*args, **kwargs)

        with patch.object(db, "flush", side_effect=failing_flush):
            with pytest.raises(RuntimeError):
                await service.complete_submission(
                    db,
                    [SubmittedAnswer(sample_form.questions["goals"].id, "Scale")],
                    company_name="Acme Retail",
                )

        async with session_factory() as fresh:
            assert await _count(fresh, Submission) == 0
            assert await _count(fresh, Answer) == 0

    @pytest.mark.asyncio
    async def test_company_lookup_is_cached(self, db, sample_form, fake_redis, service):
        await service.complete_submission(
            db,
            [SubmittedAnswer(sample_form.questions["goals"].id, "Scale")],
            company_name="Acme Retail",
        )
        assert fake_redis.store["audit:company:name:Acme Retail"] == str(sample_form.client.id)
