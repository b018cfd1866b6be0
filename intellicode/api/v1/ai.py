from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from datetime import datetime
import json
import logging
import re
import time

from intellicode.core.assistant import AssistantError, generate_text
from intellicode.core.config import settings
from intellicode.core.security import get_current_user
from intellicode.crud.ai_cache import get_cached_response, make_cache_key, store_response
from intellicode.db.base import get_db
from intellicode.models.user import User
from intellicode.schemas.ai import (
    CompleteRequest, CompleteResponse, ExplainRequest, ExplainResponse,
    RefactorRequest, RefactorResponse, SuggestRequest, SuggestResponse,
)

router = APIRouter(prefix="/ai", tags=["ai"])
logger = logging.getLogger("ai")

SUGGESTION_SYSTEM_PROMPTS = {
    "explain": "You are an expert software developer and code reviewer. Provide clear, detailed explanations of code.",
    "refactor": "You are an expert software developer specializing in code refactoring. Provide clean, well-structured code.",
    "debug": "You are an expert debugging specialist. Help identify and fix issues in code.",
    "optimize": "You are an expert in code optimization. Provide performance improvements and best practices.",
    "generate": "You are an expert software developer. Generate high-quality code based on requirements.",
}

SUGGESTION_INSTRUCTIONS = {
    "explain": "Explain the following {language} code:",
    "refactor": "Refactor the following {language} code:",
    "debug": "Debug the following {language} code and suggest fixes:",
    "optimize": "Optimize the following {language} code for better performance:",
}


def _code_block(language: str, code: str) -> str:
    return f"```{language}\n{code}\n```"


def _prompt_summary(kind: str, language: str, code: str) -> str:
    """Short label stored alongside cached responses"""
    return f"{kind}:{language}:{code[:100]}"


def parse_completions(text: str) -> List[str]:
    """
    Parse the model's completion list.

    The model is asked for a JSON array of strings; anything else becomes a
    single completion.
    """
    cleaned = text.strip()
    fenced = re.match(r"^```(?:json)?\s*(.*?)\s*```$", cleaned, re.DOTALL)
    if fenced:
        cleaned = fenced.group(1)
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        return [text]
    if isinstance(parsed, list):
        completions = [str(item) for item in parsed if item is not None]
        return completions or [text]
    return [text]


async def _ask(prompt: str, system_instruction: str, max_output_tokens: int, temperature: float, failure: str):
    try:
        return await generate_text(prompt, system_instruction, max_output_tokens, temperature)
    except AssistantError as e:
        logger.error(f"{failure}: {str(e)}")
        raise HTTPException(status_code=502, detail=failure)


@router.post("/explain", response_model=ExplainResponse)
async def explain_code(
    request: ExplainRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> Any:
    """
    Explain a piece of code in plain language.
    """
    cache_key = make_cache_key("explain", request.language, request.code)
    cached = get_cached_response(db, cache_key)
    if cached is not None:
        return ExplainResponse(explanation=cached, cached=True)

    prompt = f"""Explain the following {request.language} code in a clear and concise way. Focus on what the code does, its main components, and any important patterns or techniques used:

{_code_block(request.language, request.code)}

Provide a detailed explanation that would help a developer understand the code's purpose and functionality."""

    explanation, tokens = await _ask(
        prompt,
        "You are an expert software developer and code reviewer. Provide clear, detailed explanations "
        "of code that help developers understand functionality, patterns, and best practices.",
        1000, 0.3, "Failed to generate explanation",
    )
    store_response(
        db, cache_key, _prompt_summary("explain", request.language, request.code),
        explanation, settings.GEMINI_MODEL, tokens, settings.AI_CACHE_TTL_SECONDS,
    )
    logger.info(f"Generated explanation for {current_user.id} ({tokens} tokens)")
    return ExplainResponse(explanation=explanation)


@router.post("/refactor", response_model=RefactorResponse)
async def refactor_code(
    request: RefactorRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> Any:
    cache_key = make_cache_key("refactor", request.language, request.code, request.context or "")
    cached = get_cached_response(db, cache_key)
    if cached is not None:
        return RefactorResponse(refactored_code=cached, cached=True)

    context = f"Context: {request.context}" if request.context else ""
    prompt = f"""Refactor the following {request.language} code to improve its quality, readability, and maintainability. {context}

{_code_block(request.language, request.code)}

Provide the refactored code with:
1. Better variable and function names
2. Improved code structure and organization
3. Better error handling
4. Performance optimizations where applicable
5. Following best practices for {request.language}

Return only the refactored code without additional explanations."""

    refactored, tokens = await _ask(
        prompt,
        "You are an expert software developer specializing in code refactoring. Provide clean, "
        "well-structured, and maintainable code that follows best practices.",
        2000, 0.2, "Failed to refactor code",
    )
    store_response(
        db, cache_key, _prompt_summary("refactor", request.language, request.code),
        refactored, settings.GEMINI_MODEL, tokens, settings.AI_CACHE_TTL_SECONDS,
    )
    return RefactorResponse(refactored_code=refactored)


@router.post("/complete", response_model=CompleteResponse)
async def complete_code(
    request: CompleteRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> Any:
    position = f"{request.position.line}:{request.position.column}"
    cache_key = make_cache_key("complete", request.language, request.code, position)
    cached = get_cached_response(db, cache_key)
    if cached is not None:
        return CompleteResponse(completions=json.loads(cached), cached=True)

    prompt = f"""Complete the following {request.language} code. The cursor is at line {request.position.line}, column {request.position.column}. Provide 3-5 intelligent code completions that would logically follow from the current code:

{_code_block(request.language, request.code)}

Return the completions as a JSON array of strings, each containing a reasonable continuation of the code."""

    text, tokens = await _ask(
        prompt,
        "You are an expert software developer. Provide intelligent code completions that are "
        "contextually appropriate and follow best practices.",
        500, 0.3, "Failed to generate completions",
    )
    completions = parse_completions(text)
    store_response(
        db, cache_key, _prompt_summary("complete", request.language, request.code),
        json.dumps(completions), settings.GEMINI_MODEL, tokens, settings.AI_COMPLETION_CACHE_TTL_SECONDS,
    )
    return CompleteResponse(completions=completions)


@router.post("/suggest", response_model=SuggestResponse)
async def suggest(
    request: SuggestRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> Any:
    """
    One-shot assistant action: explain, refactor, debug, optimize or generate.
    """
    cache_key = make_cache_key("suggest", request.type, request.language, request.code, request.context or "")
    cached = get_cached_response(db, cache_key)
    if cached is not None:
        return SuggestResponse(**dict(json.loads(cached), cached=True))

    context = f"Context: {request.context}" if request.context else ""
    if request.type == "generate":
        instruction = f"Generate {request.language} code for: {request.context or 'the given requirements'}"
    else:
        instruction = f"{SUGGESTION_INSTRUCTIONS[request.type].format(language=request.language)} {context}"
    prompt = f"{instruction}\n\n{_code_block(request.language, request.code)}"

    content, tokens = await _ask(
        prompt, SUGGESTION_SYSTEM_PROMPTS[request.type], 1500, 0.3, "Failed to generate suggestion",
    )
    response = SuggestResponse(
        id=str(int(time.time() * 1000)),
        type=request.type,
        content=content,
        suggestions=[],
        metadata={
            "model": settings.GEMINI_MODEL,
            "tokens": tokens,
            "timestamp": datetime.utcnow().isoformat() + "Z",
        },
    )
    store_response(
        db, cache_key, _prompt_summary(request.type, request.language, request.code),
        response.model_dump_json(), settings.GEMINI_MODEL, tokens, settings.AI_CACHE_TTL_SECONDS,
    )
    return response
