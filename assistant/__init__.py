"""Marketplace chat assistant.

Answers visitor questions with Gemini, grounded on a small sample of the
live catalog.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from products.repository import ProductRepository
from .gemini import GeminiClient, GeminiError, GeminiConnectionError, GeminiNotConfiguredError

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000
INVENTORY_SIZE = 8
FALLBACK_REPLY = "Connection error. Please try again."

PROMPT_TEMPLATE = """
SYSTEM IDENTITY:
You are the AI Assistant for 'Anarchy Bay', a digital marketplace (similar to Gumroad).
Here, creators buy and sell **digital assets**: source code, mini-projects, design templates, and technical skills.

USER QUESTION: "{message}"

STRICT OUTPUT RULES:

1. **IF ASKING FOR PRODUCTS:**
   You MUST return the data as a MARKDOWN TABLE.

   | Digital Asset | Price | Category |
   | :--- | :--- | :--- |
   | React Dashboard | 20 | Code |

   Real Data to use:
{inventory}

   (If empty, say "No digital assets listed right now.")

2. **IF ASKING "HOW TO USE" or "STEPS":**
   Provide this exact guide for digital trading:
   **How to use Anarchy Bay:**
   1. **Sign Up** as a Creator or Buyer.
   2. **List** your code, project, or skill.
   3. **Buy** securely using our platform.
   4. **Instant Download** of assets after purchase.

3. **IF ASKING "WHAT IS THIS?":**
   "Anarchy Bay is a digital marketplace where developers and creators sell source code, mini-projects, and skills directly to buyers. No physical shipping, just instant digital delivery."

4. **IF GREETING ("Hi", "Hello"):**
   "Welcome to Anarchy Bay! I can help you find **source code**, **projects**, or help you **start selling** digital goods."

5. **TONE:** Tech-savvy, professional, encouraging.
"""


class AssistantError(Exception):
    """Base exception for assistant errors."""
    pass

class InvalidChatMessageError(AssistantError):
    """Raised when the visitor's message is empty or too long."""
    pass

class AssistantDisabledError(AssistantError):
    """Raised when Gemini is not configured."""
    pass


def format_inventory(products: List[Dict[str, Any]]) -> str:
    """Render products as markdown table rows."""
    if not products:
        return "   No digital products found."
    rows = []
    for product in products:
        categories = product.get('categories') or []
        category = categories[0] if categories else 'Uncategorized'
        price = f"{product['price']} {product.get('currency') or 'INR'}"
        rows.append(f"   | {product['name']} | {price} | {category} |")
    return '\n'.join(rows)


def build_prompt(message: str, products: List[Dict[str, Any]]) -> str:
    return PROMPT_TEMPLATE.format(message=message, inventory=format_inventory(products))


class AssistantManager:
    """Builds prompts and relays them to Gemini."""

    def __init__(self, products: Optional[ProductRepository] = None, client: Optional[GeminiClient] = None):
        self.products = products or ProductRepository()
        self.client = client or GeminiClient()

    async def reply(self, message: Optional[str]) -> Dict[str, str]:
        """Answer a visitor message.

        Raises:
            InvalidChatMessageError: If the message is empty or too long
            AssistantDisabledError: If Gemini is not configured
            AssistantError: If the catalog lookup or the Gemini call fails
        """
        message = (message or '').strip()
        if not message:
            raise InvalidChatMessageError("Message is required")
        if len(message) > MAX_MESSAGE_LENGTH:
            raise InvalidChatMessageError(
                f"Message must be at most {MAX_MESSAGE_LENGTH} characters"
            )
        if not self.client.enabled:
            raise AssistantDisabledError("Chat assistant is not configured")

        try:
            products, _ = await self.products.list(offset=0, limit=INVENTORY_SIZE, is_active=True)
        except Exception as e:
            logger.error(f"Error loading inventory for chat: {e}")
            raise AssistantError(f"Failed to load inventory: {str(e)}")

        prompt = build_prompt(message, products)
        loop = asyncio.get_running_loop()
        try:
            text = await loop.run_in_executor(None, self.client.generate, prompt)
        except GeminiError as e:
            logger.error(f"Gemini request failed: {e}")
            raise AssistantError(str(e))

        return {'reply': text}


__all__ = [
    'AssistantManager',
    'AssistantError',
    'InvalidChatMessageError',
    'AssistantDisabledError',
    'GeminiClient',
    'GeminiError',
    'GeminiConnectionError',
    'GeminiNotConfiguredError',
    'FALLBACK_REPLY',
    'build_prompt',
    'format_inventory',
]
