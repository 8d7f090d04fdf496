import asyncio
import threading
import time
from pathlib import Path
from typing import Awaitable, Callable, Optional, Set

from watchdog.events import FileSystemEvent, PatternMatchingEventHandler
from watchdog.observers import Observer

from orulab.commons.logger import logger

OnMessage = Callable[[str, str], Awaitable[None]]


def read_settled(path: Path, settle: float = 0.1, attempts: int = 20) -> Optional[str]:
    """
    Read a file once its size stops changing.

    Returns None if the file vanished or is still empty; a later
    modified/closed event brings it back once the writer is done.
    """
    last_size = -1
    for _ in range(attempts):
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            return None
        if size == last_size:
            break
        last_size = size
        time.sleep(settle)
    if last_size <= 0:
        return None
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


class _InboxHandler(PatternMatchingEventHandler):
    def __init__(self, glob: str, submit: Callable[[Path], None]):
        super().__init__(patterns=[glob], ignore_directories=True)
        self._submit = submit

    def on_created(self, event: FileSystemEvent):
        self._submit(Path(event.src_path))

    def on_modified(self, event: FileSystemEvent):
        self._submit(Path(event.src_path))

    def on_closed(self, event: FileSystemEvent):
        self._submit(Path(event.src_path))

    def on_moved(self, event: FileSystemEvent):
        self._submit(Path(event.dest_path))


class FileWatcher:
    """Watches the inbox folder and hands every new message to an async callback."""

    def __init__(self, inbox: str, glob: str, on_message_async: OnMessage, loop: asyncio.AbstractEventLoop):
        self.inbox = Path(inbox)
        self.inbox.mkdir(parents=True, exist_ok=True)
        self.loop = loop
        self.on_message_async = on_message_async
        self.handler = _InboxHandler(glob, self._submit)
        self.observer = Observer()
        # files handed to the callback and not finished yet
        self._in_flight: Set[str] = set()
        self._guard = threading.Lock()

    def _release(self, key: str):
        with self._guard:
            self._in_flight.discard(key)

    def _submit(self, path: Path):
        key = str(path)
        with self._guard:
            if key in self._in_flight:
                return
        # moves out of the inbox (e.g. into archive/) report the new location
        if path.parent.resolve() != self.inbox.resolve() or not path.exists():
            return
        try:
            text = read_settled(path)
        except (OSError, ValueError) as ex:
            logger.error(f"Could not read {path}: {ex}")
            return
        if text is None:
            return
        with self._guard:
            if key in self._in_flight:
                return
            self._in_flight.add(key)
        # watchdog calls us from its own thread
        fut = asyncio.run_coroutine_threadsafe(self.on_message_async(text, key), self.loop)
        fut.add_done_callback(lambda _f: self._release(key))

    def start(self):
        self.observer.schedule(self.handler, str(self.inbox), recursive=False)
        self.observer.start()

    def stop(self):
        self.observer.stop()
        self.observer.join()
