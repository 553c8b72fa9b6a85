"""Test doubles shared across the plugin tests."""


class FakeExecutor:
    """Records prepared requests and replays canned responses."""

    def __init__(self, response=None, error=None):
        self.response = response if response is not None else {"data": []}
        self.error = error
        self.requests = []
        self.closed = False

    async def execute(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self):
        self.closed = True
