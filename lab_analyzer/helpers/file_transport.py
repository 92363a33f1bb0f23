import asyncio
import json
import time
from pathlib import Path
import threading
from typing import Dict, List, Set

from watchdog.events import PatternMatchingEventHandler
from watchdog.observers import Observer


class ReportWriter:
    """Persists one JSON report per document id; a re-analysis overwrites it."""

    def __init__(self, archive: str):
        self.archive = Path(archive)
        self.archive.mkdir(parents=True, exist_ok=True)

    def path_for(self, safe_id: str) -> Path:
        return self.archive / f"{safe_id}.json"

    def write(self, safe_id: str, payload: Dict) -> Path:
        p = self.path_for(safe_id)
        tmp = p.parent / f"{p.name}.tmp"
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(p)
        return p


class FileWatcher:
    """Watches the inbox for OCR documents and hands their text to an async callback."""

    def __init__(
        self, inbox: str, globs: List[str], on_document_async, loop: asyncio.AbstractEventLoop
    ):
        self.inbox = Path(inbox)
        self.inbox.mkdir(parents=True, exist_ok=True)
        self.loop = loop
        self.on_document_async = on_document_async
        self.handler = PatternMatchingEventHandler(patterns=list(globs), ignore_directories=True)
        # created + modified usually both fire for one drop; one analysis per file at a time
        self._in_flight: Set[str] = set()
        self._lock = threading.Lock()

        def _submit(path: Path):
            # already moved to archive/error by a previous event
            if not path.exists():
                return
            # OCR writers may still be flushing the file
            for _ in range(10):
                try:
                    text = path.read_text(encoding="utf-8")
                    break
                except FileNotFoundError:
                    return
                except OSError:
                    time.sleep(0.05)
            else:
                text = path.read_text(encoding="utf-8")

            key = str(path)
            with self._lock:
                if key in self._in_flight:
                    return
                self._in_flight.add(key)
            fut = asyncio.run_coroutine_threadsafe(self.on_document_async(text, key), self.loop)
            fut.add_done_callback(lambda _f: self._release(key))

        self.handler.on_created = lambda e: _submit(Path(e.src_path))
        self.handler.on_modified = lambda e: _submit(Path(e.src_path))
        self.handler.on_moved = lambda e: _submit(Path(e.dest_path))

        self.observer = Observer()

    def _release(self, key: str):
        with self._lock:
            self._in_flight.discard(key)

    def start(self):
        self.observer.schedule(self.handler, str(self.inbox), recursive=False)
        self.observer.start()

    def stop(self):
        self.observer.stop()
        self.observer.join()
