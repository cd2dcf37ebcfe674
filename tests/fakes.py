from chainkit.agents.llm.base import LLMClient, ModelOptions


class FakeClient(LLMClient):
    """Scripted model client: each call pops the next reply (str) or raises it (Exception)."""

    def __init__(self, replies=(), stream_pieces=(), model="fake-model"):
        self.replies = list(replies)
        self.stream_pieces = list(stream_pieces)
        self.model = model
        self.calls = []

    def send(self, messages, options: ModelOptions):
        self.calls.append((list(messages), options))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def send_streaming(self, messages, options: ModelOptions):
        self.calls.append((list(messages), options))
        for piece in self.stream_pieces:
            if isinstance(piece, BaseException):
                raise piece
            yield piece
