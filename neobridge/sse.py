"""Progressive server-sent-event parser.

The transport hands us the response body as it grows. The parser remembers
how many characters it already consumed and only looks at complete lines
past that point, so feeding it every growing prefix of a body produces the
same records as feeding it the whole body once.

``EventSource.aiter_sse()`` consumes the byte stream itself and keeps its
position private, so it cannot be resumed over a re-fed body. Only the
record type is taken from httpx-sse; field decoding follows its rules.
"""

from __future__ import annotations

from httpx_sse import ServerSentEvent


class ProgressiveSSEParser:
    def __init__(self) -> None:
        self.processed = 0
        self._data: list[str] = []
        self._event = ""
        self._id = ""
        self._retry: int | None = None

    def feed(self, body: str) -> list[ServerSentEvent]:
        """Parse complete lines of ``body`` that were not consumed yet."""
        pending = body[self.processed :]
        end = pending.rfind("\n")
        if end < 0:
            return []
        self.processed += end + 1
        return self._parse_lines(pending[:end].split("\n"))

    def flush(self, body: str) -> list[ServerSentEvent]:
        """Parse whatever is left, including an unterminated last line, and close the pending record."""
        events = self.feed(body)
        tail = body[self.processed :]
        self.processed = len(body)
        if tail:
            events.extend(self._parse_lines([tail]))
        event = self._dispatch()
        if event is not None:
            events.append(event)
        return events

    def _parse_lines(self, lines: list[str]) -> list[ServerSentEvent]:
        events = []
        for line in lines:
            event = self._parse_line(line.rstrip("\r"))
            if event is not None:
                events.append(event)
        return events

    def _parse_line(self, line: str) -> ServerSentEvent | None:
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data.append(value)
        elif field == "event":
            self._event = value
        elif field == "id":
            if "\0" not in value:
                self._id = value
        elif field == "retry":
            try:
                self._retry = int(value)
            except ValueError:
                pass
        return None

    def _dispatch(self) -> ServerSentEvent | None:
        if not self._data and not self._event:
            return None
        event = ServerSentEvent(
            event=self._event or "message",
            data="\n".join(self._data),
            id=self._id,
            retry=self._retry,
        )
        self._data = []
        self._event = ""
        self._retry = None
        return event
