from typing import Tuple
import logging
import google.generativeai as genai

from .config import settings

logger = logging.getLogger("ai")


class AssistantError(Exception):
    """Raised when the Gemini API call fails or returns nothing usable."""


async def generate_text(
    prompt: str,
    system_instruction: str,
    max_output_tokens: int = 1500,
    temperature: float = 0.3,
) -> Tuple[str, int]:
    """
    Run one prompt against Gemini.

    Returns the response text and the total token count reported by the API.
    """
    # Configure the Gemini API
    genai.configure(api_key=settings.GEMINI_API_KEY)

    try:
        model = genai.GenerativeModel(
            settings.GEMINI_MODEL,
            system_instruction=system_instruction,
        )
        response = await model.generate_content_async(
            prompt,
            generation_config=genai.GenerationConfig(
                max_output_tokens=max_output_tokens,
                temperature=temperature,
            ),
        )
        text = (response.text or "").strip()
    except Exception as e:
        logger.error(f"Gemini API call failed: {str(e)}")
        raise AssistantError(f"Gemini API call failed: {str(e)}") from e

    if not text:
        raise AssistantError("Gemini returned an empty response")

    usage = getattr(response, "usage_metadata", None)
    tokens = getattr(usage, "total_token_count", 0) or 0
    return text, tokens
