# app/integrations/llm_client.py

import logging
import google.generativeai as genai
from google.generativeai import GenerativeModel
from app.core.config import settings

logger = logging.getLogger(__name__)


class ContentGenerator:
    """Thin async wrapper over a Gemini chat model."""

    def __init__(self, model: GenerativeModel | None):
        self.model = model

    async def generate(self, prompt: str) -> str:
        if self.model is None:
            raise RuntimeError("No LLM client configured. Set GOOGLE_API_KEY.")
        response = await self.model.generate_content_async(prompt)
        return response.text


content_generator = ContentGenerator(None)

def initialize_llm_client():
    if settings.GOOGLE_API_KEY:
        genai.configure(api_key=settings.GOOGLE_API_KEY)
        content_generator.model = genai.GenerativeModel(settings.LLM_MODEL_NAME)
        logger.info("Google Gemini client initialized.")
    else:
        logger.warning("Google Gemini API Key not found. Content generation is disabled.")

def get_content_generator() -> ContentGenerator:
    return content_generator
