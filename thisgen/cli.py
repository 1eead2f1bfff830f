"""Command-line entry point: ``this``.

Subcommands::

    this init <name> [--path DIR] [--port N] [--workspace]
    this add entity <name> [--fields SPEC] [--indexed LIST] [--validated]
    this add link <source> <target> [--link-type T] [--forward F] [--reverse R]
    this add target <webapp|desktop|ios|android> [--framework react] [--name DIR]
    this generate client [--lang typescript] [--output PATH]
    this info
    this doctor

``--dry-run`` (or ``THIS_DRY_RUN=1``) prints what would change instead of
writing.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from thisgen import __version__
from thisgen.config import ProjectLayout, Settings, load_workspace_config
from thisgen.doctor import detect_project_name, has_errors, print_report, run_checks
from thisgen.errors import IntrospectionError
from thisgen.info import print_project_info, summarize_project
from thisgen.scaffolder.generator import (
    DEFAULT_PORT,
    DEFAULT_WEBAPP_FRAMEWORK,
    SUPPORTED_TARGETS,
    ProjectGenerator,
    ScaffoldError,
)
from thisgen.scaffolder.writer import DryRunWriter, make_writer
from thisgen.utils import (
    WORKSPACE_FILE,
    detect_project_root,
    find_workspace_root,
    print_error,
    print_file_created,
    print_info,
    print_next_steps,
    print_step,
    print_success,
    print_summary_table,
    print_warning,
)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="this",
        description="Scaffold and inspect this-rs API projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  this init shop --workspace\n"
            "  this add entity product --fields 'sku:String,price:f64'\n"
            "  this add link order invoice\n"
            "  this add target webapp\n"
            "  this generate client\n"
            "  this info\n"
            "  this doctor\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Show what would change without writing any file",
    )
    parser.add_argument(
        "--project-root",
        default=None,
        help="API project directory (auto-detected from the current directory if omitted)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    # -- init
    init = commands.add_parser("init", help="Create a new project")
    init.add_argument("name", help="Project name")
    init.add_argument("--path", default=".", help="Parent directory (default: .)")
    init.add_argument("--port", type=int, default=DEFAULT_PORT, help="Server port (default: 3000)")
    init.add_argument("--this-path", default=None, help=argparse.SUPPRESS)
    init.add_argument(
        "--workspace",
        action="store_true",
        help="Create a workspace with this.yaml and an api/ subdirectory",
    )

    # -- add
    add = commands.add_parser("add", help="Add an entity, a link or a client target")
    add_commands = add.add_subparsers(dest="add_command", required=True)

    entity = add_commands.add_parser("entity", help="Scaffold a new entity")
    entity.add_argument("name", help="Entity name (singular), e.g. product")
    entity.add_argument(
        "--fields",
        default=None,
        help="Comma-separated name:Type pairs, e.g. 'sku:String,price:f64'",
    )
    entity.add_argument("--indexed", default="name", help="Comma-separated indexed fields")
    entity.add_argument(
        "--validated",
        action="store_true",
        help="Use impl_data_entity_validated! with basic validators",
    )

    link = add_commands.add_parser("link", help="Declare a relationship in config/links.yaml")
    link.add_argument("source", help="Source entity")
    link.add_argument("target", help="Target entity")
    link.add_argument("--link-type", default=None, help="Link type (default: has_<target>)")
    link.add_argument("--forward", default=None, help="Forward route name (default: target plural)")
    link.add_argument("--reverse", default=None, help="Reverse route name (default: source)")
    link.add_argument("--description", default=None, help="Link description")
    link.add_argument(
        "--no-validation-rule",
        action="store_true",
        help="Do not add a validation rule for the link",
    )

    target = add_commands.add_parser("target", help="Scaffold a client target in the workspace")
    target.add_argument(
        "target_type",
        choices=[t.value for t in SUPPORTED_TARGETS],
        help="Target kind",
    )
    target.add_argument(
        "--framework",
        default=DEFAULT_WEBAPP_FRAMEWORK,
        help="Frontend framework of a webapp target (default: react)",
    )
    target.add_argument("--name", default=None, help="Target directory, relative to the workspace")

    # -- generate
    generate = commands.add_parser("generate", help="Generate code from the project")
    generate_commands = generate.add_subparsers(dest="generate_command", required=True)
    client = generate_commands.add_parser("client", help="Generate a typed API client")
    client.add_argument("--lang", default="typescript", help="Client language (default: typescript)")
    client.add_argument("--output", default=None, help="Output file (default: auto-detected)")

    # -- info
    commands.add_parser("info", help="Summarise entities, links and wiring status")

    # -- doctor
    commands.add_parser("doctor", help="Check project consistency")

    return parser


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def resolve_project_root(settings: Settings) -> Path:
    """The API project a command operates on.

    Order: explicit setting, an enclosing API project, the API of an
    enclosing workspace.
    """
    if settings.project_root is not None:
        return settings.project_root

    root = detect_project_root()
    if root is not None:
        return root

    workspace = find_workspace_root()
    if workspace is not None:
        config = load_workspace_config(workspace / WORKSPACE_FILE)
        return config.api_root(workspace)

    raise ScaffoldError(
        "Not inside a this-rs project (no Cargo.toml with a 'this' dependency found). "
        "Run `this init <name>` first."
    )


def _cmd_init(args: argparse.Namespace, generator: ProjectGenerator) -> int:
    print_step(f"Creating new this-rs project: {args.name}")
    result = generator.init_project(
        args.name,
        args.path,
        port=args.port,
        this_path=args.this_path,
        workspace=args.workspace,
    )
    for path in result.files_created:
        print_file_created(path)

    print_success(f"Project '{args.name}' created successfully!")
    steps = [f"cd {result.api_dir}", "cargo run"]
    steps.append("this add entity <name> --fields 'field:Type,...'")
    print_next_steps(steps)
    return 0


def _cmd_add_entity(args: argparse.Namespace, generator: ProjectGenerator, settings: Settings) -> int:
    root = resolve_project_root(settings)
    print_step(f"Adding entity '{args.name}' to project...")
    result = generator.add_entity(
        root,
        args.name,
        fields=args.fields,
        indexed=args.indexed,
        validated=args.validated,
    )

    for path in result.files_created:
        print_file_created(path.relative_to(root) if path.is_relative_to(root) else path)
    if result.mod_updated:
        print_info(f"Declared pub mod {result.entity_name} in src/entities/mod.rs")

    wiring = result.wiring
    for step in wiring.applied:
        print_info(f"Wired {step}")
    for warning in wiring.warnings:
        print_warning(f"Skipped wiring: {warning}")

    print_success(f"Entity '{result.entity_name}' created!")
    if not wiring.complete:
        print_next_steps(
            [
                f'Add "{result.entity_name}" to entity_types() in src/module.rs',
                f"Register {result.entity_pascal}Descriptor in register_entities()",
                f"Add a {result.entity_plural}_store field to src/stores.rs",
            ]
        )
    return 0


def _cmd_add_link(args: argparse.Namespace, generator: ProjectGenerator, settings: Settings) -> int:
    root = resolve_project_root(settings)
    print_step(f"Adding link '{args.source} -> {args.target}' to config/links.yaml...")
    result = generator.add_link(
        root,
        args.source,
        args.target,
        link_type=args.link_type,
        forward=args.forward,
        reverse=args.reverse,
        description=args.description,
        validation_rule=not args.no_validation_rule,
    )
    for name in result.entities_added:
        print_info(f"Added entity config for: {name}")

    link = result.link
    print_summary_table(
        {
            "Link type": link.link_type,
            "Forward route": f"/{result.source_plural}/{{id}}/{link.forward_route_name}",
            "Reverse route": f"/{result.target_plural}/{{id}}/{link.reverse_route_name}",
            "Validation rule": "added" if result.validation_rule_added else "skipped",
        },
        title="Link",
    )
    print_success("Link added to config/links.yaml!")
    return 0


def _cmd_add_target(args: argparse.Namespace, generator: ProjectGenerator, settings: Settings) -> int:
    print_step(f"Adding {args.target_type} target...")
    result = generator.add_target(
        args.target_type,
        settings.project_root,
        framework=args.framework,
        name=args.name,
    )
    for path in result.files_created:
        print_file_created(path)
    print_info(f"Registered {args.target_type} target in {WORKSPACE_FILE}")

    print_success(f"Target '{args.target_type}' created in {result.target.path}/")
    target_dir = result.target.path
    if args.target_type == "webapp":
        steps = [f"cd {target_dir} && npm install", "this generate client", "npm run dev"]
    elif args.target_type == "desktop":
        steps = [f"cd {target_dir}/src-tauri && cargo tauri dev"]
    else:
        steps = [
            f"cd {target_dir} && npm install",
            f"npx cap add {args.target_type}",
            "npm run sync",
            "npm run open",
        ]
    print_next_steps(steps)
    return 0


def _cmd_generate_client(
    args: argparse.Namespace, generator: ProjectGenerator, settings: Settings
) -> int:
    print_step("Generating typed API client...")
    result = generator.generate_client(
        settings.project_root, lang=args.lang, output=args.output
    )
    print_file_created(result.output_path)
    print_success(
        f"Generated API client: {result.output_path} "
        f"({result.entity_count} entities, {result.link_count} links)"
    )
    return 0


def _cmd_doctor(settings: Settings) -> int:
    root = resolve_project_root(settings)
    diagnostics = run_checks(root)
    print_report(diagnostics, detect_project_name(ProjectLayout(root=root)))
    return 1 if has_errors(diagnostics) else 0


def _cmd_info(settings: Settings) -> int:
    root = resolve_project_root(settings)
    print_project_info(summarize_project(root))
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the ``this`` command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    if args.dry_run is not None:
        settings = settings.model_copy(update={"dry_run": args.dry_run})
    if args.project_root is not None:
        settings = settings.model_copy(update={"project_root": Path(args.project_root)})

    writer = make_writer(settings.dry_run)
    generator = ProjectGenerator(writer=writer)
    if settings.dry_run:
        print_step("Dry run: no files will be written")

    try:
        if args.command == "init":
            code = _cmd_init(args, generator)
        elif args.command == "add" and args.add_command == "entity":
            code = _cmd_add_entity(args, generator, settings)
        elif args.command == "add" and args.add_command == "link":
            code = _cmd_add_link(args, generator, settings)
        elif args.command == "add":
            code = _cmd_add_target(args, generator, settings)
        elif args.command == "generate":
            code = _cmd_generate_client(args, generator, settings)
        elif args.command == "info":
            code = _cmd_info(settings)
        else:
            code = _cmd_doctor(settings)
    except (IntrospectionError, ScaffoldError) as exc:
        print_error(f"Error: {exc}")
        return 1

    if isinstance(writer, DryRunWriter):
        writer.print_summary()
    return code


if __name__ == "__main__":
    sys.exit(main())
