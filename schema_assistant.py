# schema_assistant.py
# Turns a chat conversation into schema text using an OpenAI-compatible
# chat-completion service.

import logging
import os
import threading

from openai import OpenAI, OpenAIError

import constants
from app_config import AppSettings
from utils import strip_code_fences

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert database architect. You write valid DBML (Database Markup Language) code based on user requests.
Rules:
1. ONLY return raw DBML code.
2. DO NOT wrap the logic in markdown formatting like ```dbml or ```. Start immediately with 'Table ...'
3. DO NOT include any explanations, comments, or pleasantries before or after the code.
4. Ensure relationships are defined correctly using the 'ref:' syntax inline or standalone Ref statements.

Example valid output:
Table users {
  id integer [primary key]
  username varchar
}

Table posts {
  id integer [primary key]
  user_id integer [ref: > users.id]
  title varchar
}"""


class AssistantError(Exception):
    """The schema text could not be generated (bad request, missing key, service failure)."""


class StaleReplyError(AssistantError):
    """A newer request was started while this one was in flight; its reply must be discarded."""


def validate_messages(messages):
    """Checks the conversation shape and returns a plain list of {role, content} dicts."""
    if not isinstance(messages, (list, tuple)) or not messages:
        raise AssistantError("Messages array is required")
    cleaned = []
    for i, message in enumerate(messages):
        if not isinstance(message, dict):
            raise AssistantError(f"Message {i} must be an object with 'role' and 'content'")
        role = message.get("role")
        content = message.get("content")
        if role not in constants.ASSISTANT_ROLES:
            raise AssistantError(f"Message {i} has unsupported role {role!r}")
        if not isinstance(content, str):
            raise AssistantError(f"Message {i} content must be text")
        cleaned.append({"role": role, "content": content})
    return cleaned


class SchemaAssistant:
    def __init__(self, settings=None, client=None):
        self.settings = settings or AppSettings()
        self._client = client
        self._lock = threading.Lock()
        self._latest_request = 0

    def _get_client(self):
        if self._client is not None:
            return self._client
        api_key = os.getenv(self.settings.assistant_api_key_env)
        if not api_key:
            logger.error("Environment variable %s is not set", self.settings.assistant_api_key_env)
            raise AssistantError("API key not configured")
        self._client = OpenAI(api_key=api_key, base_url=self.settings.assistant_base_url)
        return self._client

    def _begin_request(self):
        with self._lock:
            self._latest_request += 1
            return self._latest_request

    def _is_latest(self, request_number):
        with self._lock:
            return request_number == self._latest_request

    def cancel_pending(self):
        """Marks every in-flight request as stale."""
        self._begin_request()

    def generate_schema_text(self, messages):
        """
        Sends the conversation (after the fixed system instruction) to the service
        and returns the reply as schema text with any code fences removed.
        Raises AssistantError on failure and StaleReplyError when a newer request
        superseded this one.
        """
        conversation = validate_messages(messages)
        request_number = self._begin_request()
        client = self._get_client()

        try:
            response = client.chat.completions.create(
                model=self.settings.assistant_model,
                messages=[{"role": "system", "content": SYSTEM_PROMPT}] + conversation,
                temperature=self.settings.assistant_temperature,
            )
        except OpenAIError as exc:
            logger.error("Schema generation request %d failed: %s", request_number, exc)
            raise AssistantError("Failed to generate DBML from AI provider.") from exc

        if not self._is_latest(request_number):
            logger.info("Discarding reply to superseded request %d", request_number)
            raise StaleReplyError(f"Request {request_number} was superseded by a newer request")

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""
        schema_text = strip_code_fences(content)
        if not schema_text:
            logger.warning("Schema generation request %d returned an empty reply", request_number)
            raise AssistantError("The AI provider returned an empty reply.")
        logger.debug("Request %d produced %d characters of schema text", request_number, len(schema_text))
        return schema_text
