import unittest
from types import SimpleNamespace
from unittest import mock

import httpx
import openai

from spotify_extender.errors import (
    LlmDecodeError,
    LlmHttpError,
    NoChoicesError,
    ParseError,
    TransportError,
)
from spotify_extender.llm_recommender import (
    DEFAULT_MODEL,
    NimChatCompletionClient,
    SongResponseParser,
    ask_for_recommendations,
    build_prompt,
    clean,
    parse,
)
from spotify_extender.models import SongSuggestion

CHAT_URL = "https://integrate.api.nvidia.com/v1/chat/completions"


def _completion(*contents):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=c)) for c in contents]
    )


def _sdk_client(**create_kwargs):
    sdk = mock.MagicMock()
    for key, value in create_kwargs.items():
        setattr(sdk.chat.completions.create, key, value)
    return sdk


class PromptTests(unittest.TestCase):
    def test_prompt_states_count_shape_and_playlist(self):
        text = "Song1 by ArtistA, Song2 by ArtistB, "
        prompt = build_prompt(text, 7)

        self.assertIn("give me 7 songs", prompt)
        self.assertIn("no songs that you give me should be the same", prompt)
        self.assertIn("'songs'", prompt)
        self.assertIn("'name' and 'artist'", prompt)
        self.assertTrue(prompt.endswith(text))

    def test_prompt_with_empty_playlist(self):
        prompt = build_prompt("", 3)
        self.assertTrue(prompt.endswith("Here is the playlist: "))


class CompletionClientTests(unittest.TestCase):
    def test_returns_first_choice_unmodified(self):
        sdk = _sdk_client(return_value=_completion("  `{\"songs\": []}`  ", "second"))
        client = NimChatCompletionClient("key", client=sdk)

        self.assertEqual(client.complete("hello"), "  `{\"songs\": []}`  ")
        sdk.chat.completions.create.assert_called_once_with(
            model=DEFAULT_MODEL,
            messages=[{"role": "user", "content": "hello"}],
        )

    def test_http_error_status_is_kept(self):
        response = httpx.Response(500, request=httpx.Request("POST", CHAT_URL))
        error = openai.InternalServerError("server error", response=response, body=None)
        client = NimChatCompletionClient("key", client=_sdk_client(side_effect=error))

        with self.assertRaises(LlmHttpError) as ctx:
            client.complete("hello")
        self.assertEqual(ctx.exception.status, 500)

    def test_connection_error_is_transport_error(self):
        error = openai.APIConnectionError(request=httpx.Request("POST", CHAT_URL))
        client = NimChatCompletionClient("key", client=_sdk_client(side_effect=error))

        with self.assertRaises(TransportError):
            client.complete("hello")

    def test_zero_choices(self):
        client = NimChatCompletionClient("key", client=_sdk_client(return_value=_completion()))
        with self.assertRaises(NoChoicesError):
            client.complete("hello")

    def test_undecodable_body(self):
        # the SDK returns the raw text when the body is not JSON
        client = NimChatCompletionClient("key", client=_sdk_client(return_value="<html>"))
        with self.assertRaises(LlmDecodeError):
            client.complete("hello")

    def test_ask_for_recommendations_sends_prompt(self):
        class DummyClient:
            def __init__(self, payload: str):
                self.payload = payload
                self.prompt = None

            def complete(self, prompt: str) -> str:
                self.prompt = prompt
                return self.payload

        client = DummyClient('{"songs": []}')
        reply = ask_for_recommendations("key", "Song1 by ArtistA, ", 2, client=client)

        self.assertEqual(reply, '{"songs": []}')
        self.assertIn("Song1 by ArtistA, ", client.prompt)
        self.assertIn("give me 2 songs", client.prompt)


class SdkResponseDecodingTests(unittest.TestCase):
    """Run the real OpenAI SDK against canned HTTP responses."""

    def _client(self, status, body, content_type="application/json"):
        def handler(request):
            return httpx.Response(status, content=body, headers={"content-type": content_type})

        sdk = openai.OpenAI(
            api_key="key",
            base_url="https://integrate.api.nvidia.com/v1",
            max_retries=0,
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        )
        return NimChatCompletionClient("key", client=sdk)

    def test_html_body(self):
        client = self._client(200, b"<html>oops</html>", content_type="text/html")
        with self.assertRaises(LlmDecodeError):
            client.complete("hi")

    def test_malformed_json_body(self):
        client = self._client(200, b"{not json")
        with self.assertRaises(LlmDecodeError):
            client.complete("hi")

    def test_empty_choices(self):
        client = self._client(200, b'{"choices": []}')
        with self.assertRaises(NoChoicesError):
            client.complete("hi")

    def test_server_error(self):
        client = self._client(500, b'{"error": {"message": "boom"}}')
        with self.assertRaises(LlmHttpError) as ctx:
            client.complete("hi")
        self.assertEqual(ctx.exception.status, 500)

    def test_reply_content(self):
        body = b'{"choices": [{"index": 0, "message": {"role": "assistant", "content": "`{}`"}}]}'
        self.assertEqual(self._client(200, body).complete("hi"), "`{}`")


class ResponseParserTests(unittest.TestCase):
    def test_clean_strips_backticks(self):
        self.assertEqual(clean('`{"songs":[]}`'), '{"songs":[]}')

    def test_clean_strips_whitespace(self):
        self.assertEqual(clean('  {"songs":[]}  '), '{"songs":[]}')

    def test_clean_leaves_inner_content(self):
        self.assertEqual(clean('`{"songs":[{"name":"`x`","artist":"y"}]}`'),
                         '{"songs":[{"name":"`x`","artist":"y"}]}')

    def test_clean_never_fails_on_empty(self):
        self.assertEqual(clean("   "), "")

    def test_parse_single_song(self):
        songs = parse('{"songs":[{"name":"A","artist":"B"}]}')
        self.assertEqual(songs, [SongSuggestion(name="A", artist="B")])

    def test_parse_rejects_non_json(self):
        with self.assertRaises(ParseError):
            parse("not json")

    def test_parse_rejects_wrong_shape(self):
        with self.assertRaises(ParseError):
            parse('{"recommendations":[{"title":"A","artist":"B"}]}')
        with self.assertRaises(ParseError):
            parse('{"songs":[{"name":"A"}]}')

    def test_parse_response_handles_wrapped_reply(self):
        parser = SongResponseParser()
        songs = parser.parse_response('\n`{"songs":[{"name":"Song3","artist":"ArtistC"}]}`\n')
        self.assertEqual(len(songs), 1)
        self.assertEqual(songs[0].artist, "ArtistC")


if __name__ == "__main__":
    unittest.main()
