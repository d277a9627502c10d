# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import nullcontext
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from caseflow.app import build_engine, build_notifier, ingest_ocr_file, write_history
from caseflow.config import ConfigurationError, configure_logging
from caseflow.domain.model import Candidate, ConflictDecision, ValueSource

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from caseflow.domain.engine import CaseflowEngine

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Case progression and document reconciliation")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("workflows", help="List workflows and their stages")

    stages = subparsers.add_parser("stages", help="Count entities per stage of a workflow")
    stages.add_argument("workflow", help="Workflow name, e.g. translation")
    stages.add_argument("--case-id", type=str, help="Restrict counts to one case")

    register = subparsers.add_parser("register", help="Register a case or a family member")
    register.add_argument("case_id", help="Case id")
    register.add_argument("--member-id", type=str, help="Register a family member of the case")
    register.add_argument("--relation", type=str, help="Relation of the member to the applicant")

    set_field = subparsers.add_parser("set-field", help="Record a manually entered value")
    set_field.add_argument("entity_id")
    set_field.add_argument("field_name")
    set_field.add_argument("value")
    set_field.add_argument("--actor", type=str, required=True, help="Who entered the value")

    advance = subparsers.add_parser("advance", help="Move an entity to a stage")
    advance.add_argument("entity_id")
    advance.add_argument("workflow")
    advance.add_argument("stage")
    advance.add_argument("--actor", type=str, required=True, help="Who moved the entity")
    advance.add_argument(
        "--allow-revert",
        action="store_true",
        help="Permit moving back to an earlier stage",
    )
    advance.add_argument("--reason", type=str, help="Reason recorded with the move")

    conflicts = subparsers.add_parser("conflicts", help="List open conflicts")
    conflicts.add_argument("--entity-id", type=str)
    conflicts.add_argument("--case-id", type=str)
    conflicts.add_argument(
        "--min-confidence",
        type=float,
        help="Only conflicts whose candidate confidence is at least this value",
    )

    resolve = subparsers.add_parser("resolve", help="Resolve an open conflict")
    resolve.add_argument("conflict_id")
    resolve.add_argument("decision", choices=[decision.value for decision in ConflictDecision])
    resolve.add_argument("--actor", type=str, required=True, help="Reviewer")
    resolve.add_argument("--notes", type=str)

    ingest = subparsers.add_parser("ingest-ocr", help="Ingest a JSON file of OCR batches")
    ingest.add_argument("path", type=Path)
    ingest.add_argument("--actor", type=str, help="Job or user running the ingestion")

    export = subparsers.add_parser("export-history", help="Export field audit events as JSON lines")
    export.add_argument("entity_id")
    export.add_argument("--field", dest="field_name", type=str, help="Restrict to one field")
    export.add_argument(
        "--output",
        type=Path,
        help="File to write to (default: standard output)",
    )

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _validate(args: argparse.Namespace) -> None:
    if args.command == "resolve":
        args.conflict_id = _parse_uuid(args.conflict_id)
    elif args.command == "conflicts" and args.min_confidence is not None:
        if not 0.0 <= args.min_confidence <= 1.0:
            raise ValueError("--min-confidence must be between 0 and 1")
    elif args.command == "ingest-ocr" and not args.path.is_file():
        raise ValueError(f"No such file: {args.path}")
    elif args.command == "register" and args.relation and not args.member_id:
        raise ValueError("--relation requires --member-id")


def _run(engine: CaseflowEngine, args: argparse.Namespace) -> None:  # noqa: C901, PLR0912
    if args.command == "workflows":
        for workflow in engine.stages.registry:
            print(f"{workflow.name}: {workflow.label}")
            for stage in workflow.stages:
                flags = " [milestone]" if stage.milestone else ""
                print(f"  {stage.ordinal:>2} {stage.name} ({stage.label}){flags}")
    elif args.command == "stages":
        for stage, count in engine.aggregate(args.workflow, args.case_id).items():
            print(f"{stage}\t{count}")
    elif args.command == "register":
        if args.member_id:
            entity = engine.cases.register_member(
                args.member_id, args.case_id, relation=args.relation
            )
        else:
            entity = engine.cases.register_case(args.case_id)
        log.info("Registered %s %s", entity.kind, entity.id)
    elif args.command == "set-field":
        detection = engine.evaluate(
            args.entity_id,
            args.field_name,
            Candidate(value=args.value, source=ValueSource.MANUAL, actor=args.actor),
        )
        print(detection.outcome)
        if detection.conflict is not None:
            print(f"conflict {detection.conflict.id}")
    elif args.command == "advance":
        assignment = engine.advance(
            args.entity_id,
            args.workflow,
            args.stage,
            actor=args.actor,
            allow_revert=args.allow_revert,
            reason=args.reason,
        )
        log.info("%s is at %s/%s", assignment.entity_id, assignment.workflow, assignment.stage)
    elif args.command == "conflicts":
        for conflict in engine.list_open_conflicts(
            entity_id=args.entity_id,
            case_id=args.case_id,
            min_confidence=args.min_confidence,
        ):
            print(
                f"{conflict.id}\t{conflict.entity_id}\t{conflict.field_name}\t"
                f"{conflict.candidate_value!r}\t{conflict.confidence_band}"
            )
    elif args.command == "resolve":
        conflict = engine.resolve(
            args.conflict_id, args.decision, actor=args.actor, notes=args.notes
        )
        log.info("Conflict %s is %s (%s)", conflict.id, conflict.state, conflict.decision)
    elif args.command == "ingest-ocr":
        summary = ingest_ocr_file(engine, args.path, actor=args.actor)
        for outcome, count in sorted(summary.outcomes.items()):
            print(f"{outcome}\t{count}")
        for rejected in summary.rejected:
            print(
                f"rejected\t{rejected.extraction.entity_id}\t"
                f"{rejected.extraction.field_name}\t{rejected.error}"
            )
    elif args.command == "export-history":
        events = engine.export_field_history(args.entity_id, args.field_name)
        target = args.output.open("w", encoding="utf-8") if args.output else nullcontext(sys.stdout)
        with target as output:
            count = write_history(events, output)
        log.info("Exported %d events for %s", count, args.entity_id)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    try:
        configure_logging()
    except ConfigurationError as exc:
        print(exc, file=sys.stderr)
        sys.exit(2)
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        engine = build_engine(notifier=build_notifier())
        _run(engine, parsed_args)
    except Exception:
        log.exception("Command %s failed", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
