# orulab/services/results_service.py
import asyncio
import json
import os
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from orulab.commons.lab_engine import LabEngine
from orulab.commons.logger import logger
from orulab.helpers.file_transport import FileWatcher
from orulab.helpers.tcp_transport import TcpServer
from orulab.parsers.message import ParseError
from orulab.reference.loader import ReferenceIndexProvider


def generate_result_filename(
    source: Union[tuple, str, None],
    origin: str = "file",  # tcp | file | manual
    extension: str = "json",
) -> str:
    """
    Timestamped output name that sorts naturally, e.g.
    - TCP:  20250821-170605-123456_tcp_192_168_1_45_5002.json
    - FILE: 20250821-170605-123456_file_glucose_panel.json
    """
    if source is not None and not isinstance(source, (tuple, str)):
        raise TypeError(
            f"Invalid type for source: expected tuple or str, got {type(source).__name__}"
        )

    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S-%f")
    if isinstance(source, tuple):
        host, port = source[0], source[1]
        source_str = f"{origin}_{re.sub(r'[^a-zA-Z0-9]', '_', str(host))}_{port}"
    elif source:
        base_name = os.path.splitext(os.path.basename(source))[0]
        source_str = f"{origin}_{re.sub(r'[^a-zA-Z0-9_-]', '_', base_name)}"
    else:
        source_str = origin
    return f"{ts}_{source_str}.{extension}"


class ResultsService:
    def __init__(self, provider: ReferenceIndexProvider, paths: Dict[str, str]):
        self.provider = provider
        self.paths = paths
        Path(paths["archive"]).mkdir(parents=True, exist_ok=True)
        Path(paths["error"]).mkdir(parents=True, exist_ok=True)

    def _file_error(self, hl7_text: str, src: Optional[Any]) -> Path:
        """Move an inbox file under error/ (a late writer keeps writing into it); TCP text is written out."""
        err_dir = Path(self.paths["error"])
        if isinstance(src, str) and src:
            errp = err_dir / Path(src).name
            if Path(src).exists():
                shutil.move(src, str(errp))
                return errp
        else:
            errp = err_dir / generate_result_filename(src, origin="tcp", extension="err.hl7")
        errp.write_text(hl7_text or "", encoding="utf-8")
        return errp

    async def process_text(self, hl7_text: str, src: Optional[Any] = None) -> Optional[Path]:
        """Classify one message and archive the JSON; returns the JSON path or None on failure."""
        from_file = isinstance(src, str) and bool(src)
        try:
            index = await self.provider.get()
            engine = LabEngine(index)
            results = engine.classify(hl7_text)
            payload = {"source": str(src) if src is not None else None, **engine.to_payload(results)}

            filename = generate_result_filename(src, origin="file" if from_file else "tcp")
            out_json = Path(self.paths["archive"]) / filename
            out_json.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            logger.info(f"{len(results)} result(s) classified and archived: {out_json}")

            if from_file and Path(src).exists():
                dst_dir = Path(self.paths["archive"]) / "hl7"
                dst_dir.mkdir(parents=True, exist_ok=True)
                shutil.move(src, str(dst_dir / Path(src).name))
            return out_json

        except ParseError as pe:
            errp = self._file_error(hl7_text, src)
            logger.error(f"Unparseable message moved to {errp}: {pe}")
            return None
        except Exception as ex:
            errp = self._file_error(hl7_text, src)
            logger.exception(f"Error processing result: {ex}. Moved to {errp}")
            return None

    async def process_backlog(self, glob_pat: str):
        inbox = Path(self.paths["inbox"])
        files = sorted(p for p in inbox.glob(glob_pat) if p.is_file())
        if not files:
            return
        logger.info(f"Backlog found: {len(files)} file(s) in {inbox}")
        for f in files:
            # one bad file must not stop the rest of the backlog
            try:
                try:
                    text = f.read_text(encoding="utf-8")
                except OSError as e:
                    logger.warning(f"Could not read {f}: {e}; retrying shortly...")
                    await asyncio.sleep(0.1)
                    text = f.read_text(encoding="utf-8")
            except UnicodeDecodeError as ex:
                errp = self._file_error("", str(f))
                logger.error(f"{f} is not UTF-8 text ({ex}). Moved to {errp}")
                continue
            except OSError as ex:
                logger.error(f"Skipping unreadable backlog file {f}: {ex}")
                continue
            try:
                await self.process_text(text, str(f))
            except Exception as ex:
                logger.exception(f"Unexpected failure with {f}: {ex}")

    async def run_file_mode(self, glob_pat: str):
        loop = asyncio.get_running_loop()
        await self.process_backlog(glob_pat)

        watcher = FileWatcher(self.paths["inbox"], glob_pat, self.process_text, loop)
        watcher.start()
        logger.info(f"Watching {self.paths['inbox']} for {glob_pat}")
        try:
            await asyncio.Event().wait()
        finally:
            watcher.stop()

    async def run_tcp_mode(self, host: str, port: int):
        server = TcpServer(host, port, self.process_text)
        logger.info(f"MLLP results server on {host}:{port}")
        await server.start()
