import asyncio
import json
import os
import sys
from pathlib import Path

import typer
import yaml

from orulab.commons.lab_engine import LabEngine
from orulab.commons.logger import setup_logging
from orulab.commons.types import Settings
from orulab.parsers.message import ParseError
from orulab.reference.loader import ReferenceIndexProvider
from orulab.services.results_service import ResultsService

app = typer.Typer(add_completion=False, help="ORU lab range classifier")

DEFAULT_SETTINGS = "orulab/configs/settings.yaml"


def resource_path(relative_path: str) -> str:
    """Absolute path to a bundled resource, both frozen (PyInstaller) and in development."""
    if os.path.isabs(relative_path):
        return relative_path
    base_path = getattr(sys, "_MEIPASS", os.path.abspath("."))
    return os.path.join(base_path, relative_path)


def load_cfg(path: str = DEFAULT_SETTINGS) -> Settings:
    with open(resource_path(path), "r", encoding="utf-8") as f:
        return Settings.model_validate(yaml.safe_load(f) or {})


def make_provider(cfg: Settings) -> ReferenceIndexProvider:
    ref = cfg.reference
    return ReferenceIndexProvider.from_csv(resource_path(ref.table), ref.columns, ref.delimiter)


@app.command()
def classify(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="HL7 ORU file"),
    settings: str = typer.Option(DEFAULT_SETTINGS, help="settings.yaml"),
):
    """Classify every OBX of one message and print the results as JSON."""
    cfg = load_cfg(settings)
    logger = setup_logging(cfg.paths["logs_root"], os.getenv("LOG_LEVEL", "INFO"))
    provider = make_provider(cfg)

    async def _amain():
        index = await provider.get()
        engine = LabEngine(index)
        return engine.to_payload(engine.classify(file.read_bytes()))

    try:
        payload = asyncio.run(_amain())
    except ParseError as pe:
        logger.error(f"Failed to parse ORU file {file}: {pe}")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@app.command()
def results(settings: str = typer.Option(DEFAULT_SETTINGS, help="settings.yaml")):
    """Process pending results, then keep listening (inbox folder or MLLP socket)."""
    cfg = load_cfg(settings)
    logger = setup_logging(cfg.paths["logs_root"], os.getenv("LOG_LEVEL", "INFO"))
    logger.info("Starting results processing")

    svc = ResultsService(make_provider(cfg), cfg.paths)
    transport = cfg.transport["results"]
    if transport.type == "file":
        glob_pat = transport.file.get("filename_glob", "*.hl7")
        asyncio.run(svc.run_file_mode(glob_pat))
    else:
        asyncio.run(svc.run_tcp_mode(transport.tcp.get("host", "0.0.0.0"), int(transport.tcp.get("port", 5002))))


if __name__ == "__main__":
    app()
