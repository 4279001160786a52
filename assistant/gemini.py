"""Gemini generateContent REST client"""
from typing import Optional

import requests

from config import settings_conf

API_URL = 'https://generativelanguage.googleapis.com/v1beta'
TIMEOUT = 30


class GeminiError(Exception):
    """Base exception for Gemini API errors"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

class GeminiConnectionError(GeminiError):
    """Raised when the Gemini API cannot be reached"""
    pass

class GeminiNotConfiguredError(GeminiError):
    """Raised when no API key is configured"""
    pass


class GeminiClient:
    """Minimal client for single-turn text generation"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, base_url: str = API_URL):
        self.api_key = api_key or settings_conf.get('gemini_api_key')
        self.model = model or settings_conf.get('gemini_model', 'gemini-2.5-flash')
        self.url = base_url.rstrip('/')
        self.session = requests.Session()
        self.session.headers['content-type'] = 'application/json'

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def generate(self, prompt: str) -> str:
        """Generate a reply for ``prompt``

        Raises:
            GeminiNotConfiguredError: No API key
            GeminiConnectionError: The API could not be reached
            GeminiError: The API returned an error or no text
        """
        if not self.enabled:
            raise GeminiNotConfiguredError("GEMINI_API_KEY is not configured")

        url = f"{self.url}/models/{self.model}:generateContent"
        payload = {'contents': [{'role': 'user', 'parts': [{'text': prompt}]}]}

        try:
            response = self.session.post(
                url,
                json=payload,
                headers={'x-goog-api-key': self.api_key},
                timeout=TIMEOUT
            )
            result = response.json()
        except requests.exceptions.Timeout as e:
            raise GeminiConnectionError(f"Request timed out after {TIMEOUT} seconds") from e
        except requests.exceptions.RequestException as e:
            raise GeminiConnectionError(f"Request failed: {str(e)}") from e
        except ValueError as e:
            raise GeminiError(f"Invalid response format: {str(e)}") from e

        if response.status_code >= 400:
            error = result.get('error') or {}
            raise GeminiError(error.get('message', 'Unknown error'), response.status_code)

        try:
            parts = result['candidates'][0]['content']['parts']
        except (KeyError, IndexError, TypeError) as e:
            raise GeminiError("Response contained no candidates") from e

        text = ''.join(part.get('text', '') for part in parts)
        if not text:
            raise GeminiError("Response contained no text")
        return text
