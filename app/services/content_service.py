# app/services/content_service.py

import logging
from fastapi import HTTPException, status
from app.integrations.llm_client import ContentGenerator

logger = logging.getLogger(__name__)


def ideation_prompt(topic: str, platform: str, count: int) -> str:
    return (
        f"Suggest {count} fresh {platform} video ideas about '{topic}'. "
        "For each give a title, a unique angle, a one-line hook and three tags."
    )

def trend_ideation_prompt(topic: str, platform: str, count: int) -> str:
    return (
        f"Based on what is trending right now around '{topic}', suggest {count} timely {platform} "
        "content ideas with a title and the trend each one rides."
    )

def trend_query_prompt(query: str) -> str:
    return f"Summarize the latest news and conversation about '{query}' for a content creator in five bullet points."

def script_prompt(idea: dict) -> str:
    return (
        f"Write a short video script for the idea '{idea.get('title')}' "
        f"using the angle '{idea.get('angle')}'. Open with this hook: {idea.get('hook') or 'a strong question'}."
    )

def transform_prompt(script: str, target_format: str) -> str:
    return f"Rewrite the following script as {target_format} content, keeping the core message:\n\n{script}"

def refine_prompt(idea: dict, instructions: str) -> str:
    return f"Refine the content idea '{idea.get('title')}' ({idea.get('angle')}). Instructions: {instructions}"

def seo_prompt(title: str, description: str, keywords: list) -> str:
    return (
        f"Review the SEO of this video. Title: '{title}'. Description: '{description}'. "
        f"Keywords: {', '.join(keywords) or 'none'}. Suggest an improved title, description and tags."
    )


async def generate_or_fail(generator: ContentGenerator, prompt: str) -> str:
    """Run the generator, mapping any provider failure to a 502 for the client."""
    try:
        return await generator.generate(prompt)
    except Exception as e:
        logger.error(f"Content generation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"status": "error", "message": "Content generation failed. Please try again."}
        )
