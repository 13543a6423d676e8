"""
Markdown documentation for code snippets.

The contract with the model provider is: prompt in, Markdown out. Any failure
on the provider side (no key, HTTP error, timeout, empty answer) yields a local
fallback document instead of an error, so generate() never raises.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

LANGUAGE_NAMES = {
    "ts": "TypeScript",
    "typescript": "TypeScript",
    "js": "JavaScript",
    "javascript": "JavaScript",
    "c++": "C++",
    "cpp": "C++",
    "py": "Python",
    "python": "Python",
    "java": "Java",
    "plaintext": "Plain text",
    "text": "Plain text",
}


def normalize_language(language: str) -> str:
    return LANGUAGE_NAMES.get(str(language or "").lower(), language)


def build_prompt(language: str, code: str) -> str:
    lang = normalize_language(language)
    return f"""You are an expert software developer who writes clear, concise, high-quality technical documentation.

Return **GitHub-flavored Markdown** only (no surrounding prose). Structure it as:

## Summary
A single, crisp sentence about what the code does.

## Parameters
- If the code defines a function/method with parameters, include a **table**:
| Parameter | Type | Description |
|---|---|---|
| ... | ... | ... |
- If there are no parameters, write "None".

## Return Value
Describe the return type/value. If nothing is returned, say "None".

## Example Usage
- Provide a short, copy-pasteable usage example in ```{lang}``` fenced code.

Code to document (`{lang}`):
```{lang}
{code}
```"""


def local_fallback(language: str, code: str) -> str:
    lang = normalize_language(language)
    return f"""# {lang} snippet

## Summary
Brief, auto-generated fallback description.

## Parameters
None.

## Return Value
Depends on implementation.

## Example Usage
```{lang}
{code}
```
"""


class DocGenerator:
    def __init__(self, api_key: str = "", model: str = "models/gemini-2.5-flash",
                 timeout: float = 30.0, transport: Optional[httpx.BaseTransport] = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_config(cls, config) -> "DocGenerator":
        return cls(
            api_key=config.get("GOOGLE_API_KEY", ""),
            model=config.get("GEMINI_MODEL", "models/gemini-2.5-flash"),
            timeout=config.get("GEMINI_TIMEOUT_SECONDS", 30.0),
        )

    def generate(self, language: str, code: str) -> str:
        if not self.api_key:
            logger.info("no model API key configured, using fallback documentation")
            return local_fallback(language, code)

        body = {"contents": [{"parts": [{"text": build_prompt(language, code)}]}]}
        url = f"{GEMINI_BASE_URL}/{self.model}:generateContent"
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(url, params={"key": self.api_key}, json=body)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("model API returned %s, using fallback", exc.response.status_code)
            return local_fallback(language, code)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("model API call failed (%s), using fallback", exc)
            return local_fallback(language, code)

        text = _first_text(data).strip()
        return text or local_fallback(language, code)


def _first_text(data) -> str:
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"] or ""
    except (KeyError, IndexError, TypeError):
        return ""
