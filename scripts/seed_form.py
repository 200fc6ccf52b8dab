"""Seed a demo technology audit form plus one partner and one client company.

Usage: python -m scripts.seed_form
"""
import asyncio
import sys
sys.path.insert(0, ".")

from sqlalchemy import select
from app.database import async_session_factory
from app.models.company import Company, CompanySize, CompanyType, Industry
from app.models.form import (
    ConditionalOperator,
    Form,
    Question,
    QuestionCategory,
    QuestionConditional,
    QuestionOption,
    QuestionType,
)


FORM_TITLE = "Technology & Workflow Audit"

# Each category: (name, [(key, text, type, required, [options])])
AUDIT_CATEGORIES = [
    (
        "Business Overview",
        [
            ("team_size", "How many people work in your business?", QuestionType.MULTIPLE_CHOICE, True,
             ["1-5", "6-20", "21-50", "51+"]),
            ("goals", "What are your main business goals for the next 12 months?", QuestionType.TEXT, True, []),
        ],
    ),
    (
        "Current Tools",
        [
            ("tools", "Which tools does your team use every day?", QuestionType.CHECKBOX, True,
             ["Email", "Spreadsheets", "CRM", "Project management", "Accounting software"]),
            ("crm_name", "Which CRM do you use?", QuestionType.TEXT, False, []),
            ("satisfaction", "How satisfied are you with your current tools?", QuestionType.MULTIPLE_CHOICE, True,
             ["Very satisfied", "Somewhat satisfied", "Not satisfied"]),
        ],
    ),
    (
        "Workflow Pain Points",
        [
            ("manual_tasks", "Which tasks take the most manual effort?", QuestionType.TEXT, True, []),
            ("automation", "Have you automated any workflows before?", QuestionType.MULTIPLE_CHOICE, False,
             ["Yes", "No", "Not sure"]),
        ],
    ),
]

# (question key, condition question key, values, show_question)
AUDIT_CONDITIONALS = [
    ("crm_name", "tools", ["CRM"], True),
]


async def seed_form(session) -> Form:
    existing = await session.execute(select(Form).where(Form.title == FORM_TITLE))
    form = existing.scalar_one_or_none()
    if form is not None:
        print(f"  Form {FORM_TITLE!r} already exists (id={form.id}), skipping.")
        return form

    form = Form(title=FORM_TITLE, description="Baseline audit of tools, workflows and goals.")
    session.add(form)
    await session.flush()

    questions: dict[str, Question] = {}
    for category_order, (category_name, category_questions) in enumerate(AUDIT_CATEGORIES):
        category = QuestionCategory(form_id=form.id, name=category_name, order=category_order)
        session.add(category)
        await session.flush()

        for question_order, (key, text, qtype, required, options) in enumerate(category_questions):
            question = Question(
                category_id=category.id,
                text=text,
                type=qtype,
                required=required,
                order=question_order,
            )
            session.add(question)
            await session.flush()
            questions[key] = question

            for option_order, option in enumerate(options):
                session.add(
                    QuestionOption(
                        question_id=question.id,
                        text=option,
                        value=option,
                        order=option_order,
                    )
                )

    for key, condition_key, values, show in AUDIT_CONDITIONALS:
        session.add(
            QuestionConditional(
                question_id=questions[key].id,
                condition_question_id=questions[condition_key].id,
                condition_values=values,
                show_question=show,
                operator=ConditionalOperator.OR,
            )
        )

    print(f"  Seeded form {FORM_TITLE!r} with {len(questions)} questions.")
    return form


async def seed_company(session, **fields) -> Company:
    existing = await session.execute(select(Company).where(Company.name == fields["name"]))
    company = existing.scalar_one_or_none()
    if company is not None:
        print(f"  Company {fields['name']!r} already exists, skipping.")
        return company
    company = Company(**fields)
    session.add(company)
    await session.flush()
    print(f"  Seeded {company.type.value} {company.name!r} (id={company.id})")
    return company


async def seed():
    async with async_session_factory() as session:
        form = await seed_form(session)
        await session.flush()

        partner = await seed_company(
            session,
            form_id=form.id,
            name="Demo Partner Agency",
            industry=Industry.PROFESSIONAL_SERVICES,
            size=CompanySize.SMALL,
            image_url="https://example.com/partner-logo.png",
            type=CompanyType.PARTNER,
            provider_email="reports@partner.example.com",
        )
        await seed_company(
            session,
            form_id=form.id,
            name="Demo Client Co",
            industry=Industry.RETAIL,
            size=CompanySize.MEDIUM,
            image_url="https://example.com/client-logo.png",
            type=CompanyType.CLIENT,
            partner_id=partner.id,
        )
        await session.commit()
    print("Done seeding audit form.")


if __name__ == "__main__":
    asyncio.run(seed())
