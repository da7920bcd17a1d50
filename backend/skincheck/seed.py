from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from skincheck.clients.leancloud import LeanCloudClient
from skincheck.config import SettingsError, load_settings
from skincheck.errors import ValidationError
from skincheck.models.evaluation import EvaluationCreate
from skincheck.repositories.evaluation_repository import EvaluationRepository
from skincheck.services.evaluation_service import parse_evaluation


def read_records(path: Path) -> list[dict[str, Any]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"File not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, list):
        raise ValueError(f"Expected a list in {path}")
    if not all(isinstance(item, dict) for item in data):
        raise ValueError(f"Expected a list of objects in {path}")
    return data


def validate_records(items: list[dict[str, Any]]) -> list[EvaluationCreate]:
    payloads: list[EvaluationCreate] = []
    for index, item in enumerate(items):
        try:
            payloads.append(parse_evaluation(item))
        except ValidationError as exc:
            raise ValueError(f"Record {index}: {exc}") from exc
    return payloads


async def seed(repository: EvaluationRepository, payloads: list[EvaluationCreate]) -> list[str]:
    return [await repository.create_evaluation(payload) for payload in payloads]


async def _run(path: Path, dry_run: bool) -> int:
    payloads = validate_records(read_records(path))
    if dry_run:
        print(f"Validated {len(payloads)} evaluation records (dry run)")
        return 0

    try:
        settings = load_settings()
    except SettingsError as exc:
        raise ValueError(str(exc)) from exc

    client = LeanCloudClient.from_settings(settings)
    try:
        repository = EvaluationRepository(client, class_name=settings.evaluation_class)
        created = await seed(repository, payloads)
    finally:
        await client.close()

    print(f"Seed complete: {len(created)} evaluation records")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Insert evaluation records into LeanCloud")
    parser.add_argument("--file", required=True, type=Path)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args(argv)

    try:
        return asyncio.run(_run(args.file, args.dry_run))
    except Exception as exc:
        print(f"Seed failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
