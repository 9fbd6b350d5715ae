"""
Test doubles: deterministic executors and fake Flickr/HTTP payloads.
"""

import io
import json
from concurrent.futures import Executor, Future
from unittest.mock import Mock

from PIL import Image


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        f = Future()
        try:
            f.set_result(fn(*args, **kwargs))
        except BaseException as e:
            f.set_exception(e)
        return f


class ManualExecutor(Executor):
    """Queues submitted work until run_all(), so tests can act in between."""

    def __init__(self):
        self.tasks = []

    def submit(self, fn, *args, **kwargs):
        f = Future()
        self.tasks.append((f, fn, args, kwargs))
        return f

    def run_all(self):
        tasks, self.tasks = self.tasks, []
        for f, fn, args, kwargs in tasks:
            f.set_result(fn(*args, **kwargs))
        return len(tasks)


def png_bytes(color=(255, 0, 0), size=(4, 4)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def http_response(status_code=200, content=b"", text=""):
    r = Mock()
    r.status_code = status_code
    r.content = content
    r.text = text
    return r


def search_body(ids, stat="ok"):
    return json.dumps(
        {
            "stat": stat,
            "photos": {
                "page": 1,
                "pages": 3,
                "photo": [{"id": pid, "url_s": f"https://live.staticflickr.com/{pid}_s.jpg"} for pid in ids],
            },
        }
    ).encode()
