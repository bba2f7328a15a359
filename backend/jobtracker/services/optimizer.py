"""
Content Optimizer - AI rewriting of resumes and cover letters

Thin text-in, text-out client over an OpenAI-compatible chat completion
API. Every failure surfaces as UpstreamServiceError so the UI can offer a
retry; nothing is retried server-side.

Usage:
    from openai import AsyncOpenAI

    optimizer = ContentOptimizer(openai_client=AsyncOpenAI())
    text = await optimizer.optimize_cover_letter(draft, job_description)
"""

import logging
from typing import Any, Optional

from openai import AsyncOpenAI

from jobtracker.config import get_settings
from jobtracker.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are an expert resume writer and career coach. Return only the rewritten text."

RESUME_SECTION_PROMPT = """Optimize the following resume section.
Make it more impactful and concise, tailored to the job description if one is given.
Use action verbs, quantify achievements where possible, and ensure clarity.

Section: {section_title}

Current content:
{section_content}

Job description:
{job_description}"""

COVER_LETTER_PROMPT = """Rewrite the DRAFT cover letter below so it is more impactful, concise,
persuasive and tailored to the job description. Keep a professional tone and
highlight how the candidate's experience (from the resume snippet, if provided)
matches the job requirements.

DRAFT:
{current_cover_letter}

Job description:
{job_description}

Resume snippet:
{resume_snippet}"""

GENERATE_COVER_LETTER_PROMPT = """Write a cover letter for the job below using the skills and
experience found in the resume.

Resume:
{resume}

Job description:
{job_description}"""

IMPROVE_RESUME_PROMPT = """Review the resume and job description, then return an improved resume
that better matches the job description, highlighting relevant skills and experience.

Resume:
{resume_text}

Job description:
{job_description}"""


class ContentOptimizer:
    """
    Attributes:
        client: Async OpenAI client (None when no API key is configured)
        model: Chat model name
    """

    def __init__(self, openai_client: Optional[Any], model: str = "gpt-4o-mini"):
        self.client = openai_client
        self.model = model

    async def _complete(self, prompt: str) -> str:
        if self.client is None:
            raise UpstreamServiceError("AI service is not configured", status_code=503)

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.4,
            )
        except Exception as e:
            logger.error(f"AI optimization call failed: {e}")
            raise UpstreamServiceError() from e

        content = (response.choices[0].message.content or "").strip() if response.choices else ""
        if not content:
            logger.error("AI optimization returned an empty completion")
            raise UpstreamServiceError()
        return content

    async def optimize_resume_section(
        self,
        section_title: str,
        section_content: str,
        job_description: Optional[str] = None,
    ) -> str:
        return await self._complete(RESUME_SECTION_PROMPT.format(
            section_title=section_title,
            section_content=section_content,
            job_description=job_description or "(none provided)",
        ))

    async def optimize_cover_letter(
        self,
        current_cover_letter: str,
        job_description: str,
        resume_snippet: Optional[str] = None,
    ) -> str:
        return await self._complete(COVER_LETTER_PROMPT.format(
            current_cover_letter=current_cover_letter,
            job_description=job_description,
            resume_snippet=resume_snippet or "(none provided)",
        ))

    async def generate_cover_letter(self, resume: str, job_description: str) -> str:
        return await self._complete(GENERATE_COVER_LETTER_PROMPT.format(
            resume=resume, job_description=job_description,
        ))

    async def improve_resume(self, resume_text: str, job_description: str) -> str:
        return await self._complete(IMPROVE_RESUME_PROMPT.format(
            resume_text=resume_text, job_description=job_description,
        ))


def get_optimizer() -> ContentOptimizer:
    settings = get_settings()
    client = None
    if settings.openai_api_key:
        client = AsyncOpenAI(api_key=settings.openai_api_key)
    return ContentOptimizer(openai_client=client, model=settings.openai_model)
