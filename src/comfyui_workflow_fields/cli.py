"""
comfyui-fields CLI: inspect and edit the user-facing fields of a ComfyUI workflow.

Usage:
    comfyui-fields analyze workflow.json
    comfyui-fields fields workflow.json --category seed
    comfyui-fields options KSampler sampler_name
    comfyui-fields options CheckpointLoaderSimple ckpt_name
    comfyui-fields validate 3 steps 30 workflow.json
    comfyui-fields apply workflow.json --edits '{"3": {"steps": 30}}'
    comfyui-fields apply workflow.json --edits @edits.json
    comfyui-fields randomize-seeds < workflow.json
    comfyui-fields diff before.json after.json
    comfyui-fields --url http://host:8188 --schema fields workflow.json

Workflows are read from a file path or stdin. JSON goes to stdout, messages to stderr.
"""

import argparse
import json
import os
import sys

from .cli_utils import (
    EXIT_CONNECTION,
    EXIT_ERROR,
    EXIT_NOT_FOUND,
    EXIT_OK,
    EXIT_VALIDATION,
    _error,
    _exit_code_for_error,
    _is_pretty,
    _msg,
    _output,
    _parse_json_arg,
    _parse_value,
    _read_json_file,
    _read_workflow,
)


def _pretty(args) -> bool:
    return args.pretty or _is_pretty()


def _load_editor(args):
    """WorkflowEditor for the command's workflow, or None after reporting the problem."""
    from .dropdown_provider import get_option_provider
    from .editor import WorkflowEditor
    from .schema_provider import get_schema_provider

    workflow = _read_workflow(args)
    if workflow is None:
        _output(_error("Provide workflow file path or pipe JSON via stdin", "INVALID_PARAMS"), _pretty(args))
        return None

    schema_provider = None
    if args.schema:
        schema_provider = get_schema_provider()
        if schema_provider.get() is None:
            _msg("ComfyUI node schema unavailable, classifying from local tables only")

    editor = WorkflowEditor(workflow, schema_provider=schema_provider, option_provider=get_option_provider())
    if editor.summary.error is not None:
        _output(editor.summary.error.to_dict(), _pretty(args))
        return None
    return editor


def cmd_analyze(args):
    """Classify every value of a workflow."""
    editor = _load_editor(args)
    if editor is None:
        return EXIT_VALIDATION
    _output(editor.summary.to_dict(), _pretty(args))
    return EXIT_OK


def cmd_fields(args):
    """List editable fields grouped by category."""
    from .field_types import category_label, format_value_for_display
    from .workflow_model import Category

    category = None
    if args.category:
        try:
            category = Category(args.category.lower())
        except ValueError:
            names = ", ".join(c.value for c in Category)
            _output(_error(f"Unknown category '{args.category}'. Use: {names}", "INVALID_PARAMS"), _pretty(args))
            return EXIT_VALIDATION

    editor = _load_editor(args)
    if editor is None:
        return EXIT_VALIDATION

    groups = {}
    fields = editor.fields(category)
    for classified in fields:
        entry = classified.to_dict()
        entry["display_value"] = format_value_for_display(classified.value)
        groups.setdefault(category_label(classified.category), []).append(entry)
    _output({"count": len(fields), "groups": groups}, _pretty(args))
    return EXIT_OK


def cmd_options(args):
    """Resolve the option list of a dropdown or model field."""
    from .dropdown_provider import get_option_provider, source_for_name

    source = source_for_name(args.node_type, args.field_name, args.value or "")
    result = get_option_provider().resolve_source(source, wait=True, timeout=args.timeout)
    data = result.to_dict()
    data["subtype"] = source.subtype
    if source.catalog:
        data["catalog"] = source.catalog
    _output(data, _pretty(args))
    if result.error is not None:
        _msg(f"Options unavailable: {result.error.error}")
        return EXIT_CONNECTION
    return EXIT_OK


def cmd_validate(args):
    """Validate a value for one field."""
    editor = _load_editor(args)
    if editor is None:
        return EXIT_VALIDATION
    field_id = f"{args.node_id}-{args.field_name}"
    if editor.get_field(args.node_id, args.field_name) is None:
        _output(_error(f"No field '{args.field_name}' on node {args.node_id}", "NOT_FOUND"), _pretty(args))
        return EXIT_NOT_FOUND
    errors = editor.validate_value(args.node_id, args.field_name, _parse_value(args.value))
    _output({"field_id": field_id, "valid": not errors, "errors": errors}, _pretty(args))
    return EXIT_OK if not errors else EXIT_VALIDATION


def cmd_apply(args):
    """Apply {node_id: {field: value}} edits and print the reconciled workflow."""
    edits = _parse_json_arg(args.edits)
    if not isinstance(edits, dict):
        _output(_error("--edits must be a JSON object of {node_id: {field: value}}", "INVALID_PARAMS"), _pretty(args))
        return EXIT_VALIDATION

    editor = _load_editor(args)
    if editor is None:
        return EXIT_VALIDATION
    loaded = editor.apply_stored_edits(edits)
    for skipped in loaded["skipped"]:
        _msg(f"Skipped {skipped.get('field_id', skipped.get('node_id'))}: {skipped['reason']}")

    result = editor.reconcile()
    for dropped in result.dropped:
        _msg(f"Dropped {dropped.node_id}-{dropped.field_name}: {dropped.reason}")

    if args.full:
        _output({**result.to_dict(), "skipped": loaded["skipped"]}, _pretty(args))
    else:
        _output(result.document, _pretty(args))
    return EXIT_OK


def cmd_randomize_seeds(args):
    """Give every seed field a fresh random value."""
    editor = _load_editor(args)
    if editor is None:
        return EXIT_VALIDATION
    seeds = editor.randomize_all_seeds()
    _msg(f"Randomized {len(seeds)} seed(s)")
    _output(editor.reconcile().document, _pretty(args))
    return EXIT_OK


def cmd_diff(args):
    """Compare two workflow files."""
    from .workflow_diff import diff_documents

    result = diff_documents(_read_json_file(args.workflow_a), _read_json_file(args.workflow_b))
    _output(result, _pretty(args))
    if "error" in result:
        return _exit_code_for_error(result)
    return EXIT_OK


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add --pretty flag (also accepted before the subcommand)."""
    parser.add_argument("--pretty", action="store_true", default=argparse.SUPPRESS, help="Pretty-print JSON output")


def _add_workflow_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("workflow", nargs="?", default="-", help="Workflow JSON file (or - for stdin)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="comfyui-fields",
        description="Find, validate and edit the user-editable fields of ComfyUI workflows",
    )
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    parser.add_argument("--url", help="ComfyUI server URL (overrides COMFYUI_URL env)")
    parser.add_argument(
        "--schema",
        action="store_true",
        help="Load the node schema from ComfyUI before classifying",
    )
    sub = parser.add_subparsers(dest="command", help="Available commands")

    # ── analyze ──
    p_analyze = sub.add_parser("analyze", help="Classify every value of a workflow")
    _add_workflow_arg(p_analyze)
    _add_common_args(p_analyze)
    p_analyze.set_defaults(func=cmd_analyze)

    # ── fields ──
    p_fields = sub.add_parser("fields", help="List editable fields")
    _add_workflow_arg(p_fields)
    p_fields.add_argument("--category", "-c", help="seed, prompt, text, model, dropdown, number, boolean")
    _add_common_args(p_fields)
    p_fields.set_defaults(func=cmd_fields)

    # ── options ──
    p_options = sub.add_parser("options", help="Option list for a dropdown or model field")
    p_options.add_argument("node_type", help="Node class, e.g. KSampler")
    p_options.add_argument("field_name", help="Field name, e.g. sampler_name")
    p_options.add_argument("--value", help="Current value, used to infer the model catalog")
    p_options.add_argument("--timeout", type=float, default=None, help="Seconds to wait for the listing")
    _add_common_args(p_options)
    p_options.set_defaults(func=cmd_options)

    # ── validate ──
    p_validate = sub.add_parser("validate", help="Validate a value for one field")
    p_validate.add_argument("node_id")
    p_validate.add_argument("field_name")
    p_validate.add_argument("value", help="Value; parsed as JSON when possible")
    _add_workflow_arg(p_validate)
    _add_common_args(p_validate)
    p_validate.set_defaults(func=cmd_validate)

    # ── apply ──
    p_apply = sub.add_parser("apply", help="Apply edits and print the reconciled workflow")
    _add_workflow_arg(p_apply)
    p_apply.add_argument("--edits", "-e", required=True, help="JSON {node_id: {field: value}} (or @file.json)")
    p_apply.add_argument("--full", action="store_true", help="Also report applied, skipped and dropped edits")
    _add_common_args(p_apply)
    p_apply.set_defaults(func=cmd_apply)

    # ── randomize-seeds ──
    p_seeds = sub.add_parser("randomize-seeds", help="Randomize every seed field")
    _add_workflow_arg(p_seeds)
    _add_common_args(p_seeds)
    p_seeds.set_defaults(func=cmd_randomize_seeds)

    # ── diff ──
    p_diff = sub.add_parser("diff", help="Compare two workflows")
    p_diff.add_argument("workflow_a")
    p_diff.add_argument("workflow_b")
    _add_common_args(p_diff)
    p_diff.set_defaults(func=cmd_diff)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.url:
        from .client import reset_client

        os.environ["COMFYUI_URL"] = args.url
        reset_client()

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_ERROR)

    try:
        exit_code = args.func(args)
        sys.exit(exit_code or EXIT_OK)
    except json.JSONDecodeError as e:
        _output(_error(f"Invalid JSON: {e}", "INVALID_PARAMS"), _pretty(args))
        sys.exit(EXIT_VALIDATION)
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as e:
        _output(_error(str(e), "CLI_ERROR"), _pretty(args))
        sys.exit(EXIT_ERROR)


if __name__ == "__main__":
    main()
