import os
import unittest
from types import SimpleNamespace
from unittest import mock

from openai import OpenAIError

from app_config import AppSettings
from schema_assistant import SYSTEM_PROMPT, AssistantError, SchemaAssistant, StaleReplyError, validate_messages


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestValidateMessages(unittest.TestCase):
    def test_accepts_conversation(self):
        messages = [{"role": "user", "content": "a shop"}, {"role": "assistant", "content": "Table a {\n}"}]
        self.assertEqual(validate_messages(messages), messages)

    def test_rejects_bad_input(self):
        for messages in (None, [], "hello", [{"role": "robot", "content": "x"}], [{"role": "user"}], ["text"]):
            with self.assertRaises(AssistantError):
                validate_messages(messages)


class TestSchemaAssistant(unittest.TestCase):
    def setUp(self):
        self.client = mock.MagicMock()
        self.assistant = SchemaAssistant(client=self.client)

    def test_returns_unfenced_text(self):
        self.client.chat.completions.create.return_value = completion("```dbml\nTable users {\n  id int\n}\n```")
        text = self.assistant.generate_schema_text([{"role": "user", "content": "users table"}])
        self.assertEqual(text, "Table users {\n  id int\n}")

    def test_request_shape(self):
        self.client.chat.completions.create.return_value = completion("Table a {\n}")
        self.assistant.generate_schema_text([{"role": "user", "content": "one table"}])
        kwargs = self.client.chat.completions.create.call_args.kwargs
        settings = AppSettings()
        self.assertEqual(kwargs["model"], settings.assistant_model)
        self.assertEqual(kwargs["temperature"], settings.assistant_temperature)
        self.assertEqual(kwargs["messages"][0], {"role": "system", "content": SYSTEM_PROMPT})
        self.assertEqual(kwargs["messages"][1], {"role": "user", "content": "one table"})

    def test_service_error(self):
        self.client.chat.completions.create.side_effect = OpenAIError("boom")
        with self.assertRaises(AssistantError):
            self.assistant.generate_schema_text([{"role": "user", "content": "x"}])

    def test_empty_reply(self):
        self.client.chat.completions.create.return_value = completion("   ")
        with self.assertRaises(AssistantError):
            self.assistant.generate_schema_text([{"role": "user", "content": "x"}])

    def test_no_choices(self):
        self.client.chat.completions.create.return_value = SimpleNamespace(choices=[])
        with self.assertRaises(AssistantError):
            self.assistant.generate_schema_text([{"role": "user", "content": "x"}])

    def test_superseded_reply_is_stale(self):
        def newer_request_arrives(**kwargs):
            self.assistant.cancel_pending()
            return completion("Table a {\n}")

        self.client.chat.completions.create.side_effect = newer_request_arrives
        with self.assertRaises(StaleReplyError):
            self.assistant.generate_schema_text([{"role": "user", "content": "x"}])

    def test_missing_api_key(self):
        settings = AppSettings()
        settings.assistant_api_key_env = "ERD_SYNC_TEST_UNSET_KEY"
        with mock.patch.dict(os.environ, {}, clear=True):
            assistant = SchemaAssistant(settings=settings)
            with self.assertRaises(AssistantError):
                assistant.generate_schema_text([{"role": "user", "content": "x"}])


if __name__ == "__main__":
    unittest.main()
