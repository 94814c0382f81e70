"""
Client for the external generation service (OpenAI).

The assistant only produces raw text. Everything it returns is treated as
untrusted and judged by the services before it touches the database.
"""

import json
import logging
import os
import re
from typing import Any, Dict, List, Optional

import openai
from dotenv import load_dotenv

from Pantry.errors import GenerationError, GenerationTimeoutError

load_dotenv()

logger = logging.getLogger(__name__)

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_VISION_MODEL = os.getenv("OPENAI_VISION_MODEL", "gpt-4o-mini")
GENERATION_TIMEOUT_SECONDS = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "30"))

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def extract_json(content: str) -> Any:
    """Parse a JSON payload, unwrapping a Markdown code fence if the model added one."""
    text = (content or "").strip()
    match = _FENCE_RE.match(text)
    if match:
        text = match.group(1)
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        raise GenerationError("shape", f"Generation service returned unparsable JSON: {e}")


def unwrap_list(payload: Any, key: str) -> List[Any]:
    """Accept either a bare JSON array or an object holding the array under ``key``."""
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    if isinstance(payload, list):
        return payload
    raise GenerationError("shape", f"Expected a JSON array of {key}")


class KitchenAssistant:
    """
    Thin wrapper around the OpenAI chat API.

    Built once at process start and handed to the services that need it,
    so tests can swap in a scripted double with the same four methods.
    """

    def __init__(self, api_key: Optional[str] = None, model: str = OPENAI_MODEL,
                 vision_model: str = OPENAI_VISION_MODEL,
                 default_timeout: float = GENERATION_TIMEOUT_SECONDS):
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model
        self.vision_model = vision_model
        self.default_timeout = default_timeout
        self._client = None

    @property
    def client(self) -> openai.OpenAI:
        if self._client is None:
            if not self.api_key:
                raise GenerationError("configuration", "OpenAI API key not set in environment.")
            self._client = openai.OpenAI(api_key=self.api_key)
        return self._client

    def _complete(self, messages: List[Dict[str, Any]], model: str, timeout: Optional[float],
                  temperature: float = 0.7, max_tokens: int = 1500) -> str:
        timeout = timeout or self.default_timeout
        try:
            response = self.client.with_options(timeout=timeout, max_retries=0).chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.APITimeoutError:
            raise GenerationTimeoutError(timeout)
        except openai.OpenAIError as e:
            raise GenerationError("service", f"Generation service failed: {e}")

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise GenerationError("shape", "Generation service returned an empty response")
        logger.debug("generation payload (%s): %s", model, content)
        return content

    def generate_recipe(self, context: Dict[str, Any], timeout: Optional[float] = None) -> str:
        """Ask for one recipe built from ``context['ingredients']`` for ``context['servings']`` people."""
        prompt = f"""
Create one recipe for exactly {context['servings']} servings using some of these inventory items:
{json.dumps(context['ingredients'])}
"""
        if context.get("equipment"):
            prompt += f"\nThe cook has this equipment available: {json.dumps(context['equipment'])}\n"
        if context.get("special_requests"):
            prompt += f"\nSpecial requests: {context['special_requests']}\n"
        if context.get("avoid_names"):
            prompt += f"\nDo not repeat these recipes: {json.dumps(context['avoid_names'])}\n"
        prompt += """
Only use the items listed above and refer to them by their itemId.
Respond ONLY in JSON with these keys:
    - name (string)
    - description (string)
    - instructions (string, numbered steps separated by newlines)
    - cookingTime (integer, minutes)
    - servings (integer)
    - ingredients (array of {"itemId": integer, "quantity": number, "unit": string})
    - equipment (array of equipment itemIds used, empty when none were offered)
"""
        return self._complete(
            [{"role": "system", "content": "You are a helpful cooking assistant that generates recipes based on available ingredients."},
             {"role": "user", "content": prompt}],
            model=self.model,
            timeout=timeout,
        )

    def analyze_image(self, image_url: str, timeout: Optional[float] = None) -> str:
        """Extract the items visible on a receipt or a photo of groceries."""
        text = (
            "Analyze this shopping receipt or image of items. Respond ONLY in JSON as "
            '{"items": [{"name": string, "quantity": number, "unit": string, "category": string}]}'
        )
        return self._complete(
            [{"role": "user", "content": [
                {"type": "text", "text": text},
                {"type": "image_url", "image_url": {"url": image_url}},
            ]}],
            model=self.vision_model,
            timeout=timeout,
            temperature=0.2,
            max_tokens=1000,
        )

    def categorize_items(self, items: List[Dict[str, Any]], categories: List[str],
                         timeout: Optional[float] = None) -> str:
        system = "You are a helpful assistant that categorizes kitchen items. Categories must be one of: " + ", ".join(categories)
        user = (
            "Categorize these kitchen items. Respond ONLY in JSON as "
            '{"categories": [{"id": integer, "category": string}]}.\n'
            f"Items: {json.dumps(items)}"
        )
        return self._complete(
            [{"role": "system", "content": system}, {"role": "user", "content": user}],
            model=self.model,
            timeout=timeout,
            temperature=0.3,
            max_tokens=1000,
        )

    def suggest_equipment(self, level: str, additional_info: Optional[str] = None,
                          timeout: Optional[float] = None) -> str:
        system = """You are a helpful assistant specializing in kitchen equipment.
Generate a list of kitchen equipment matching the requested level:
- basic: essential items for a minimal kitchen (10-15 items)
- average: standard equipment for regular home cooking (15-25 items)
- fancy: comprehensive set for an enthusiastic home chef (25-35 items)
Respond ONLY in JSON as {"equipment": [{"name": string, "quantity": number, "unit": string, "notes": string}]}"""
        user = f"Please generate a {level} kitchen equipment list for me."
        if additional_info:
            user += f"\nAdditional information: {additional_info}"
        return self._complete(
            [{"role": "system", "content": system}, {"role": "user", "content": user}],
            model=self.model,
            timeout=timeout,
            max_tokens=2000,
        )
