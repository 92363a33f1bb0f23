# lab_analyzer/services/analysis_service.py
import asyncio
import json
import shutil
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from lab_analyzer.commons.logger import logger
from lab_analyzer.helpers.file_transport import FileWatcher, ReportWriter
from lab_analyzer.helpers.router import DocumentRouter, safe_document_id
from lab_analyzer.validation.validators import EmptyInputError


class AnalysisService:
    def __init__(self, router: DocumentRouter, paths):
        self.router = router
        self.paths = paths
        self.writer = ReportWriter(paths["archive"])
        Path(paths["error"]).mkdir(parents=True, exist_ok=True)

    def _to_error(self, text: str, src: Optional[str]) -> Path:
        err_name = Path(src).name if src else "document.err.txt"
        errp = Path(self.paths["error"]) / err_name
        errp.write_text(text, encoding="utf-8")
        if src and Path(src).exists():
            Path(src).unlink()
        return errp

    async def _process_text(self, text: str, src: Optional[str]) -> Optional[Path]:
        tag = Path(src).stem if src else "document"
        # 1) raw input is always kept
        self.router.archive_raw("recv", text, tag=tag)
        try:
            # 2) envelope + analysis
            doc = self.router.load_document(text, src or f"{tag}.txt")
            payload = self.router.transform_document(doc)
            # 3) report keyed by document id
            out = self.writer.write(safe_document_id(doc.document_id), payload)
            logger.info(
                f"Report for {doc.document_id} stored at {out} "
                f"({payload['analysis']['abnormal_count']} abnormal)"
            )
            # 4) processed source leaves the inbox
            if src and Path(src).exists():
                dst_dir = Path(self.paths["archive"]) / "source"
                dst_dir.mkdir(parents=True, exist_ok=True)
                shutil.move(src, str(dst_dir / Path(src).name))
            return out

        except (EmptyInputError, ValidationError, json.JSONDecodeError) as ex:
            errp = self._to_error(text, src)
            logger.error(f"Document rejected ({type(ex).__name__}), moved to {errp}: {ex}")
            return None
        except Exception as ex:
            errp = self._to_error(text, src)
            logger.exception(f"Unexpected error analyzing {tag}: {ex}. Moved to {errp}")
            return None

    async def _process_backlog(self, globs: List[str]) -> int:
        inbox = Path(self.paths["inbox"])
        files = sorted({f for pat in globs for f in inbox.glob(pat) if f.is_file()})
        if not files:
            return 0
        logger.info(f"Backlog: {len(files)} document(s) waiting in {inbox}")
        for f in files:
            try:
                text = f.read_text(encoding="utf-8")
            except OSError as e:
                logger.warning(f"Could not read {f}: {e}; retrying once")
                await asyncio.sleep(0.1)
                text = f.read_text(encoding="utf-8")
            await self._process_text(text, str(f))
        return len(files)

    async def run_file_mode(self, globs: List[str], stop_event: Optional[asyncio.Event] = None):
        loop = asyncio.get_running_loop()

        await self._process_backlog(globs)

        watcher = FileWatcher(self.paths["inbox"], globs, self._process_text, loop)
        watcher.start()
        logger.info(f"Watching {self.paths['inbox']} for OCR documents...")
        try:
            await (stop_event or asyncio.Event()).wait()
        finally:
            watcher.stop()
