"""
Tests for the OpenAI completion wrapper and the JSON extraction helpers.
"""
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from core.llm.openai_service import OpenAIService, _parse_reset_duration
from core.llm.response_parsing import extract_json_object, strip_code_fences


def _completion(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class TestOpenAIServiceComplete(unittest.TestCase):

    def setUp(self):
        patcher = patch('core.llm.openai_service.OpenAI')
        self.mock_openai_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = MagicMock()
        self.mock_openai_cls.return_value = self.client

    def test_client_built_with_key_and_base_url(self):
        OpenAIService(api_key="sk-test", base_url="http://llm.local/v1")
        self.mock_openai_cls.assert_called_once_with(api_key="sk-test", base_url="http://llm.local/v1")

    def test_client_omits_unset_options(self):
        OpenAIService()
        self.mock_openai_cls.assert_called_once_with()

    def test_complete_sends_system_and_user_messages(self):
        self.client.chat.completions.create.return_value = _completion('{"ok": true}')
        service = OpenAIService(api_key="sk-test", default_model="gpt-4o-mini", temperature=0.0)

        result = service.complete("Parse this", system_prompt="You are a parser")

        self.assertEqual(result, '{"ok": true}')
        kwargs = self.client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs['model'], "gpt-4o-mini")
        self.assertEqual(kwargs['max_tokens'], 1024)
        self.assertEqual(kwargs['temperature'], 0.0)
        self.assertEqual(kwargs['messages'], [
            {"role": "system", "content": "You are a parser"},
            {"role": "user", "content": "Parse this"},
        ])

    def test_complete_overrides_model_and_tokens(self):
        self.client.chat.completions.create.return_value = _completion("done")
        service = OpenAIService(api_key="sk-test")

        service.complete("hi", model="gpt-4o", max_tokens=50)

        kwargs = self.client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs['model'], "gpt-4o")
        self.assertEqual(kwargs['max_tokens'], 50)
        self.assertEqual(kwargs['messages'], [{"role": "user", "content": "hi"}])

    def test_empty_completion_raises(self):
        self.client.chat.completions.create.return_value = _completion("")
        service = OpenAIService(api_key="sk-test")

        with self.assertRaises(ValueError):
            service.complete("hi")
        self.assertEqual(self.client.chat.completions.create.call_count, 1)

    def test_no_choices_raises(self):
        self.client.chat.completions.create.return_value = SimpleNamespace(choices=[])
        service = OpenAIService(api_key="sk-test")

        with self.assertRaises(ValueError):
            service.complete("hi")


@pytest.mark.parametrize("value,expected", [
    ("1s", 1.0),
    ("500ms", 0.5),
    ("1m30s", 90.0),
    ("2h", 7200.0),
    ("", 0.0),
])
def test_parse_reset_duration(value, expected):
    assert _parse_reset_duration(value) == pytest.approx(expected)


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


def test_extract_json_object_ignores_surrounding_text():
    text = 'Here you go:\n{"score": 80, "pros": ["Python"]}\nThanks'
    assert extract_json_object(text) == {"score": 80, "pros": ["Python"]}


def test_extract_json_object_without_object():
    with pytest.raises(ValueError):
        extract_json_object("no json here")
