"""Centralized logging helpers for gen-pr runs."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

LLM_LOGGER_NAME = "genpr.llm"
PLAN_LOGGER_NAME = "genpr.plan"
TOOLS_LOGGER_NAME = "genpr.tools"
MANIFEST_LOGGER_NAME = "genpr.manifest"

_LOG_FILE_SPEC = (
    (LLM_LOGGER_NAME, "llm.log", "llm"),
    (PLAN_LOGGER_NAME, "plans.log", "plans"),
    (TOOLS_LOGGER_NAME, "tools.log", "tools"),
    (MANIFEST_LOGGER_NAME, "manifest.log", "manifests"),
)


@dataclass
class RunLogContext:
    """Holds per-run logging metadata and output paths."""

    run_id: str
    logs_root: Path
    run_dir: Path
    llm_log: Path
    plan_log: Path
    tool_log: Path
    manifest_log: Path


@dataclass
class RunArtifactManager:
    """Lists the log files of a run and writes its manifest."""

    context: RunLogContext

    def iter_entries(self) -> List[Tuple[str, Path]]:
        entries: List[Tuple[str, Path]] = [
            ("LLM Log", self.context.llm_log),
            ("Plan Log", self.context.plan_log),
            ("Tool Log", self.context.tool_log),
            ("Run Manifest", self.context.manifest_log),
        ]
        return entries

    def write_manifest(self, success: bool, *, issue_number: Optional[int] = None) -> Path:
        entries = self.iter_entries()
        lines = [
            f"Run ID: {self.context.run_id}",
            f"Status: {'success' if success else 'failed'}",
        ]
        if issue_number is not None:
            lines.append(f"Issue: #{issue_number}")
        lines.extend(["", "Artifacts:"])
        manifest_payload: Dict[str, str] = {}
        for label, path in entries:
            path_str = str(path)
            lines.append(f"- {label}: {path_str}")
            manifest_payload[label] = path_str
        manifest_text = "\n".join(lines) + "\n"
        self.context.manifest_log.write_text(manifest_text, encoding="utf-8")

        manifest_logger = logging.getLogger(MANIFEST_LOGGER_NAME)
        manifest_logger.info(
            json.dumps(
                {
                    "run_id": self.context.run_id,
                    "issue_number": issue_number,
                    "success": success,
                    "artifacts": manifest_payload,
                },
                ensure_ascii=False,
            )
        )
        return self.context.manifest_log


def setup_run_logging(
    *,
    run_id: Optional[str] = None,
    logs_root: Optional[Path] = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 5,
) -> RunLogContext:
    """Configure per-run file loggers for LLM calls, plans, tools, and manifests."""

    resolved_root = Path(logs_root or "logs").resolve()
    resolved_root.mkdir(parents=True, exist_ok=True)

    active_run_id = run_id or uuid4().hex
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    run_dir = resolved_root / f"{timestamp}-{active_run_id[:6]}"
    run_dir.mkdir(parents=True, exist_ok=True)

    log_paths = {
        key: run_dir / filename
        for _, filename, key in _LOG_FILE_SPEC
    }

    for logger_name, _, key in _LOG_FILE_SPEC:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.INFO)
        logger.propagate = False
        logger.handlers = [
            handler
            for handler in logger.handlers
            if not isinstance(handler, RotatingFileHandler)
        ]
        file_handler = RotatingFileHandler(
            log_paths[key], maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
        logger.addHandler(file_handler)

    return RunLogContext(
        run_id=active_run_id,
        logs_root=resolved_root,
        run_dir=run_dir,
        llm_log=log_paths["llm"],
        plan_log=log_paths["plans"],
        tool_log=log_paths["tools"],
        manifest_log=log_paths["manifests"],
    )


def configure_console_logging(verbose: bool = False) -> None:
    """Send gen-pr diagnostics to stderr; ``verbose`` lowers the level to DEBUG."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def summarize_messages(messages: Iterable[Dict[str, object]], limit: int = 120) -> str:
    """Return a concise single-line summary of the final user message."""

    text: Optional[str] = None
    for msg in messages:
        if isinstance(msg, dict) and msg.get("role") == "user":
            candidate = str(msg.get("content", "")).strip()
            if candidate:
                text = candidate
    if not text:
        return "(no user content)"
    text = text.replace("\n", " ")
    return text[:limit] + ("…" if len(text) > limit else "")


def summarize_response(content: Optional[str], limit: int = 120) -> str:
    """Single-line summary of the LLM response text."""

    text = (content or "").strip()
    if not text:
        return "(empty response)"
    text = text.replace("\n", " ")
    return text[:limit] + ("…" if len(text) > limit else "")


def log_plan_failure_summary(
    *,
    stage: str,
    model: str,
    reason: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """Emit a concise summary when an LLM reply could not be parsed into a plan."""

    logger = logging.getLogger(PLAN_LOGGER_NAME)
    logger.warning(
        "plan_failure_summary stage=%s model=%s reason=%s metadata=%s",
        stage,
        model,
        reason,
        metadata or {},
    )
