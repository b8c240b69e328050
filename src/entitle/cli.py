"""Entitle CLI — snapshot, permit, tripwire, risk, and artifact commands."""

import asyncio
import json
import logging
import math
import sys

USAGE = """Usage: entitle <command> [args]

  snapshot  <city> <lat> <lng> [use_type]      Zoning snapshot for a point
  permits   <city> <project_type>              Permit pathway artifact
  tripwires <city> <occupancy_type> [corridor_width_in]
                                               Tripwire checklist artifact
  risk      <city> <artifact_id> [...]         Risk register from prior artifacts
  artifact  <id-or-slug>                       Print a stored artifact as JSON

  Example: entitle snapshot seattle 47.6097 -122.3331 office"""


def _setup() -> None:
    from entitle.config import settings
    from entitle.observability import init_tracing, setup_logging

    setup_logging(json_format=False, level=settings.log_level)
    init_tracing()


def _print_created(result) -> None:
    print(f"\nArtifact {result.artifact.id}")
    print(f"Slug:      {result.artifact.web_slug}")


def _snapshot(args: list[str]) -> None:
    from entitle.pipeline.snapshot import build_snapshot
    from entitle.retrieval.zoning import normalize_city

    if len(args) < 3:
        print("Usage: entitle snapshot <city> <lat> <lng> [use_type]")
        sys.exit(1)
    city = normalize_city(args[0])
    use_type = args[3] if len(args) > 3 else None

    snap = asyncio.run(build_snapshot(city, args[1], args[2], use_type))
    out = snap.to_output()
    district = out["zoning_district"]
    print(f"\n{district['zone_code']} — {district['zone_name']}  [{out['data_availability']}]")
    if use_type:
        print(f"Use '{use_type}': {snap.selected_use_status.value}")
    h = out["height_limit"]
    print(f"Height: {h['max_height_ft'] or '—'} ft / {h['max_height_stories'] or '—'} stories   "
          f"FAR: {out['far'] or '—'}   Lot coverage: {out['lot_coverage_pct'] or '—'}%")
    print(f"Parking: {out['parking']['summary']}")
    if out["overlay_flags"]:
        print(f"Overlays: {', '.join(out['overlay_flags'])}")
    for flag in out["red_flags"]:
        print(f"  ! {flag}")
    print(f"\n{out['disclaimer']}")


def _permits(args: list[str]) -> None:
    from entitle.pipeline.artifacts import create_permit_pathway_artifact
    from entitle.retrieval.zoning import normalize_city

    if len(args) < 2:
        print("Usage: entitle permits <city> <project_type>")
        sys.exit(1)
    result = asyncio.run(create_permit_pathway_artifact(normalize_city(args[0]), args[1]))
    t = result.output["timeline_ranges"]
    print(f"\nP50: {t['p50_days'] or '—'} days   P90: {t['p90_days'] or '—'} days")
    print(t["note"])
    for delay in result.output["common_delays"]:
        print(f"  - {delay}")
    _print_created(result)


def _positive_number(raw: str, name: str) -> float:
    from entitle.core.errors import InvalidInputError

    try:
        value = float(raw)
    except ValueError:
        raise InvalidInputError(f"{name} must be a number, got {raw!r}")
    if not math.isfinite(value) or value <= 0:
        raise InvalidInputError(f"{name} must be a positive number, got {raw!r}")
    return value


def _tripwires(args: list[str]) -> None:
    from entitle.pipeline.artifacts import create_tripwire_checklist_artifact
    from entitle.retrieval.zoning import normalize_city

    if len(args) < 2:
        print("Usage: entitle tripwires <city> <occupancy_type> [corridor_width_in]")
        sys.exit(1)
    inputs = {"corridor_width_in": _positive_number(args[2], "corridor_width_in")} if len(args) > 2 else None
    result = asyncio.run(create_tripwire_checklist_artifact(normalize_city(args[0]), args[1], inputs))
    print()
    for item in result.output["checklist"]:
        print(f"  {item['status']:<13} {item['label']:<28} {item['code_reference']}")
    _print_created(result)


def _risk(args: list[str]) -> None:
    from entitle.pipeline.artifacts import create_risk_register_artifact
    from entitle.retrieval.zoning import normalize_city

    if len(args) < 2:
        print("Usage: entitle risk <city> <artifact_id> [<artifact_id> ...]")
        sys.exit(1)
    result = asyncio.run(create_risk_register_artifact(normalize_city(args[0]), args[1:]))
    items = result.output["items"]
    print(f"\n{len(items)} risk items:")
    for item in items:
        print(f"  {item['risk_id']}  [{item['source']}] {item['description']}")
        print(f"         → {item['consequence']}")
    _print_created(result)


def _artifact(args: list[str]) -> None:
    from entitle.storage.artifacts import get_artifact_store

    if not args:
        print("Usage: entitle artifact <id-or-slug>")
        sys.exit(1)

    async def _run():
        store = get_artifact_store()
        return await store.get_by_id(args[0]) or await store.get_by_slug(args[0])

    artifact = asyncio.run(_run())
    if artifact is None:
        print(f"No artifact found for: {args[0]}")
        sys.exit(1)
    print(json.dumps({
        "id": artifact.id,
        "type": artifact.type.value,
        "city": artifact.city,
        "web_slug": artifact.web_slug,
        "created_at": artifact.created_at,
        "input_params": artifact.input_params,
        "output_data": artifact.output_data,
    }, indent=2, default=str))


COMMANDS = {
    "snapshot": _snapshot,
    "permits": _permits,
    "tripwires": _tripwires,
    "risk": _risk,
    "artifact": _artifact,
}


def main() -> None:
    """Dispatch: entitle <command> [args]"""
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        print(USAGE)
        sys.exit(0 if sys.argv[1:] in (["-h"], ["--help"]) else 1)

    command = COMMANDS.get(sys.argv[1])
    if command is None:
        print(f"Unknown command: {sys.argv[1]}\n")
        print(USAGE)
        sys.exit(1)

    _setup()

    from entitle.core.errors import EntitlementError

    try:
        command(sys.argv[2:])
    except EntitlementError as e:
        logging.getLogger(__name__).debug("Command failed", exc_info=True)
        print(f"Error: {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
