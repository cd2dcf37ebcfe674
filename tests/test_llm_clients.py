import json
import unittest

import httpx

from chainkit.agents.llm.base import ModelOptions
from chainkit.agents.llm.groq import GroqOpenAIClient
from chainkit.agents.llm.ollama import OllamaOpenAIClient
from chainkit.pipeline.errors import ModelRequestError, TransportError, TransportFault
from chainkit.pipeline.prompt import Message

MESSAGES = [Message("system", "Be brief."), Message("user", "Say hello")]


def completion(content: str) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "llama3.2:latest",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }


def ollama(handler) -> OllamaOpenAIClient:
    return OllamaOpenAIClient("http://localhost:11434/v1/", "llama3.2:latest",
                              transport=httpx.MockTransport(handler))


def raising(exc_type, message):
    def handler(request):
        raise exc_type(message, request=request)
    return handler


class TestOllamaClient(unittest.TestCase):
    def test_send(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion("Hello!"))

        text = ollama(handler).send(MESSAGES, ModelOptions(temperature=0.5, max_tokens=100, context_window=2048))

        self.assertEqual(text, "Hello!")
        self.assertEqual(seen["url"], "http://localhost:11434/v1/chat/completions")
        self.assertEqual(seen["auth"], "Bearer ollama")
        body = seen["body"]
        self.assertEqual(body["model"], "llama3.2:latest")
        self.assertEqual(body["temperature"], 0.5)
        self.assertFalse(body["stream"])
        self.assertEqual(body["max_tokens"], 100)
        self.assertEqual(body["options"], {"num_ctx": 2048})
        self.assertEqual(body["messages"], [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Say hello"},
        ])

    def test_model_override(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion("hi"))

        ollama(handler).send(MESSAGES, ModelOptions(model="mistral:latest"))
        self.assertEqual(seen["body"]["model"], "mistral:latest")
        self.assertNotIn("max_tokens", seen["body"])

    def test_unknown_model_is_request_error(self):
        client = ollama(lambda r: httpx.Response(404, json={"error": {"message": "model 'x' not found"}}))
        with self.assertRaises(ModelRequestError) as ctx:
            client.send(MESSAGES, ModelOptions())
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertIn("not found", str(ctx.exception))
        self.assertFalse(ctx.exception.retryable)

    def test_server_error_is_retryable_transport(self):
        for status in (500, 503, 429):
            with self.assertRaises(TransportError) as ctx:
                ollama(lambda r, s=status: httpx.Response(s, text="boom")).send(MESSAGES, ModelOptions())
            self.assertEqual(ctx.exception.fault, TransportFault.SERVER)
            self.assertTrue(ctx.exception.retryable)

    def test_network_faults(self):
        cases = [
            (raising(httpx.ConnectError, "[Errno 111] Connection refused"), TransportFault.CONN_REFUSED),
            (raising(httpx.ConnectError, "[Errno -2] Name or service not known"), TransportFault.NOT_FOUND),
            (raising(httpx.ReadTimeout, "timed out"), TransportFault.TIMEOUT),
            (raising(httpx.ConnectTimeout, "timed out"), TransportFault.TIMEOUT),
            (raising(httpx.RemoteProtocolError, "peer closed connection"), TransportFault.RESET),
            (raising(httpx.ReadError, "connection reset by peer"), TransportFault.RESET),
        ]
        for handler, fault in cases:
            with self.assertRaises(TransportError) as ctx:
                ollama(handler).send(MESSAGES, ModelOptions())
            self.assertEqual(ctx.exception.fault, fault)

    def test_missing_choices(self):
        with self.assertRaises(TransportError) as ctx:
            ollama(lambda r: httpx.Response(200, json={"error": "overloaded"})).send(MESSAGES, ModelOptions())
        self.assertEqual(ctx.exception.fault, TransportFault.SERVER)

    def test_non_object_bodies(self):
        for body in ([], {"choices": ["oops"]}, {"choices": [{"message": None}]}, "text"):
            with self.assertRaises(TransportError) as ctx:
                ollama(lambda r, body=body: httpx.Response(200, json=body)).send(MESSAGES, ModelOptions())
            self.assertEqual(ctx.exception.fault, TransportFault.SERVER)

    def test_streaming_non_object_chunk(self):
        body = b"data: []\n\ndata: [DONE]\n\n"
        client = ollama(lambda r: httpx.Response(200, content=body, headers={"Content-Type": "text/event-stream"}))
        with self.assertRaises(TransportError) as ctx:
            list(client.send_streaming(MESSAGES, ModelOptions()))
        self.assertEqual(ctx.exception.fault, TransportFault.SERVER)

    def test_send_streaming(self):
        events = [
            {"choices": [{"index": 0, "delta": {"role": "assistant", "content": "Hel"}}]},
            {"choices": [{"index": 0, "delta": {"content": "lo, "}}]},
            {"choices": [{"index": 0, "delta": {}}]},
            {"choices": [{"index": 0, "delta": {"content": "world"}}]},
        ]
        body = "".join(f"data: {json.dumps(e)}\n\n" for e in events) + "data: [DONE]\n\n"
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=body.encode(), headers={"Content-Type": "text/event-stream"})

        pieces = list(ollama(handler).send_streaming(MESSAGES, ModelOptions()))
        self.assertEqual(pieces, ["Hel", "lo, ", "world"])
        self.assertTrue(seen["body"]["stream"])

    def test_streaming_http_error(self):
        client = ollama(lambda r: httpx.Response(404, json={"error": "model not found"}))
        with self.assertRaises(ModelRequestError):
            list(client.send_streaming(MESSAGES, ModelOptions()))

    def test_streaming_connection_refused(self):
        client = ollama(raising(httpx.ConnectError, "[Errno 111] Connection refused"))
        with self.assertRaises(TransportError) as ctx:
            list(client.send_streaming(MESSAGES, ModelOptions()))
        self.assertEqual(ctx.exception.fault, TransportFault.CONN_REFUSED)


class TestGroqClient(unittest.TestCase):
    def groq(self, handler) -> GroqOpenAIClient:
        return GroqOpenAIClient(
            api_key="test-key",
            base_url="https://api.groq.test/openai/v1",
            model="llama-3.1-8b-instant",
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        )

    def test_send(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json=completion("namaste"))

        self.assertEqual(self.groq(handler).send(MESSAGES, ModelOptions(temperature=0.1)), "namaste")
        self.assertEqual(seen["auth"], "Bearer test-key")
        self.assertEqual(seen["body"]["model"], "llama-3.1-8b-instant")
        self.assertEqual(seen["body"]["temperature"], 0.1)

    def test_status_errors(self):
        with self.assertRaises(TransportError) as ctx:
            self.groq(lambda r: httpx.Response(503, json={"error": {"message": "busy"}})).send(MESSAGES, ModelOptions())
        self.assertEqual(ctx.exception.fault, TransportFault.SERVER)

        with self.assertRaises(ModelRequestError) as ctx:
            self.groq(lambda r: httpx.Response(400, json={"error": {"message": "bad"}})).send(MESSAGES, ModelOptions())
        self.assertEqual(ctx.exception.status_code, 400)

    def test_empty_choices(self):
        body = {**completion("x"), "choices": []}
        with self.assertRaises(TransportError) as ctx:
            self.groq(lambda r: httpx.Response(200, json=body)).send(MESSAGES, ModelOptions())
        self.assertEqual(ctx.exception.fault, TransportFault.SERVER)

    def test_connection_errors(self):
        with self.assertRaises(TransportError) as ctx:
            self.groq(raising(httpx.ConnectError, "[Errno 111] Connection refused")).send(MESSAGES, ModelOptions())
        self.assertEqual(ctx.exception.fault, TransportFault.CONN_REFUSED)

        with self.assertRaises(TransportError) as ctx:
            self.groq(raising(httpx.ReadTimeout, "timed out")).send(MESSAGES, ModelOptions())
        self.assertEqual(ctx.exception.fault, TransportFault.TIMEOUT)


if __name__ == "__main__":
    unittest.main()
