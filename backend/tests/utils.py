"""Helpers shared by the tests."""


def parse_events(body: str) -> list[str]:
    """Split an SSE body into event payloads."""
    events = []
    for block in body.split("\n\n"):
        if not block:
            continue
        lines = [line[len("data: "):] for line in block.split("\n") if line.startswith("data: ")]
        events.append("\n".join(lines))
    return events
