from __future__ import annotations
import argparse
import asyncio
import logging
import sys
from dotenv import load_dotenv

from yonk_sql_architect.config import ArchitectConfig, load_config
from yonk_sql_architect.results import Result
from yonk_sql_architect.workspace import Workspace, open_workspace


def run() -> None:
    """Main CLI entry point."""
    # Load environment variables first
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="yonk-sql",
        description="SQL Architect - schema registry, table tagging and SQL generation"
    )
    parser.add_argument("--config", default=None,
                        help="Path to YAML configuration (default: $SQL_ARCHITECT_CONFIG or environment)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    # Import command
    imp = sub.add_parser("import", help="Import CREATE TABLE statements")
    imp_source = imp.add_mutually_exclusive_group(required=True)
    imp_source.add_argument("--file", help="Path to a SQL dump (any extension)")
    imp_source.add_argument("--text", help="SQL text to parse")
    imp.add_argument("--tags", default="",
                     help="Tags for every imported table, separated by commas or spaces")

    # Table commands
    tables = sub.add_parser("tables", help="Table registry commands")
    tables_sub = tables.add_subparsers(dest="tables_cmd", required=True)
    tables_ls = tables_sub.add_parser("ls", help="List imported tables")
    tables_ls.add_argument("--search", default="", help="Filter by table name or tag")
    tables_show = tables_sub.add_parser("show", help="Show a table's DDL")
    tables_show.add_argument("table", help="Table name or id")
    tables_rm = tables_sub.add_parser("rm", help="Remove a table")
    tables_rm.add_argument("table", help="Table name or id")
    tables_clear = tables_sub.add_parser("clear", help="Remove all tables")
    tables_clear.add_argument("--yes", action="store_true", help="Confirm removing every table")
    tables_tag = tables_sub.add_parser("tag", help="Replace a table's tags")
    tables_tag.add_argument("table", help="Table name or id")
    tables_tag.add_argument("tags", nargs="*", help="New tags (none clears them)")

    # Tag library commands
    tags = sub.add_parser("tags", help="Tag library commands")
    tags_sub = tags.add_subparsers(dest="tags_cmd", required=True)
    tags_sub.add_parser("ls", help="List the tag library")
    tags_add = tags_sub.add_parser("add", help="Add a tag")
    tags_add.add_argument("tag")
    tags_rm = tags_sub.add_parser("rm", help="Remove a tag")
    tags_rm.add_argument("tag")
    tags_set = tags_sub.add_parser("set", help="Replace the whole tag library")
    tags_set.add_argument("tags", nargs="*")

    # Auto-tag command
    sub.add_parser("autotag", help="Suggest tags for all tables with the LLM")

    # Ask command
    ask = sub.add_parser("ask", help="Generate SQL for a natural-language requirement")
    ask.add_argument("requirement", help="What the query should do")
    ask.add_argument("--save", action="store_true", help="Bookmark the generated SQL")

    # Saved query commands
    saved = sub.add_parser("saved", help="Saved query commands")
    saved_sub = saved.add_subparsers(dest="saved_cmd", required=True)
    saved_sub.add_parser("ls", help="List saved queries")
    saved_show = saved_sub.add_parser("show", help="Print a saved query")
    saved_show.add_argument("id")
    saved_rename = saved_sub.add_parser("rename", help="Rename a saved query")
    saved_rename.add_argument("id")
    saved_rename.add_argument("name")
    saved_rm = saved_sub.add_parser("rm", help="Delete a saved query")
    saved_rm.add_argument("id")
    saved_sub.add_parser("clear", help="Delete all saved queries")

    # Web command
    web = sub.add_parser("web", help="Run the HTTP API")
    web.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    web.add_argument("--port", type=int, default=8080, help="Port (default: 8080)")

    args = parser.parse_args()

    try:
        config = load_config(args.config)
        configure_logging(config)

        if args.cmd == "web":
            from yonk_sql_architect.web.app import serve
            serve(config, host=args.host, port=args.port)
        else:
            exit_code = asyncio.run(dispatch(args, config))
            sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def configure_logging(config: ArchitectConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.logging.level),
        format=config.logging.format,
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )


async def dispatch(args: argparse.Namespace, config: ArchitectConfig) -> int:
    """Open the workspace and run one command. Returns the exit code."""
    workspace = await open_workspace(config)
    for warning in workspace.load_warnings:
        print(f"Warning: {warning.message}", file=sys.stderr)

    if args.cmd == "import":
        return await import_cmd(workspace, args.file, args.text, args.tags)
    elif args.cmd == "tables":
        if args.tables_cmd == "ls":
            return list_tables_cmd(workspace, args.search)
        elif args.tables_cmd == "show":
            return show_table_cmd(workspace, args.table)
        elif args.tables_cmd == "rm":
            return await remove_table_cmd(workspace, args.table)
        elif args.tables_cmd == "clear":
            return await clear_tables_cmd(workspace, args.yes)
        elif args.tables_cmd == "tag":
            return await tag_table_cmd(workspace, args.table, args.tags)
    elif args.cmd == "tags":
        return await tags_cmd(workspace, args)
    elif args.cmd == "autotag":
        return await autotag_cmd(workspace)
    elif args.cmd == "ask":
        return await ask_cmd(workspace, args.requirement, args.save)
    elif args.cmd == "saved":
        return await saved_cmd(workspace, args)
    return 2


def report_failure(result: Result) -> int:
    print(f"Error: {result.message}", file=sys.stderr)
    return 1


def resolve_table(workspace: Workspace, name_or_id: str):
    return workspace.registry.get_by_name(name_or_id) or workspace.registry.get(name_or_id)


async def import_cmd(workspace: Workspace, file: str | None, text: str | None, tags: str) -> int:
    """Import tables from a file or literal SQL text."""
    if file:
        result = await workspace.import_file(file, tags)
    else:
        result = await workspace.import_sql(text or "", tags)

    if not result.ok:
        return report_failure(result)

    print(f"Imported {len(result.value)} tables:")
    for table in result.value:
        tags_info = f"  [{', '.join(table.tags)}]" if table.tags else ""
        print(f"  {table.name}{tags_info}")
    return 0


def list_tables_cmd(workspace: Workspace, search: str) -> int:
    tables = workspace.list_tables(search)
    total = len(workspace.registry)

    if not total:
        print("No tables imported yet.")
        return 0

    print(f"\nImported Tables ({len(tables)}/{total}):")
    print("=" * 80)
    for table in tables:
        tags_info = ", ".join(table.tags) if table.tags else "-"
        print(f"  {table.name:<40} {tags_info}")
        print(f"    id: {table.id}")
    return 0


def show_table_cmd(workspace: Workspace, name_or_id: str) -> int:
    table = resolve_table(workspace, name_or_id)
    if table is None:
        print(f"Error: table not found: {name_or_id}", file=sys.stderr)
        return 1
    print(f"-- {table.name}  [{', '.join(table.tags)}]")
    print(table.ddl)
    return 0


async def remove_table_cmd(workspace: Workspace, name_or_id: str) -> int:
    table = resolve_table(workspace, name_or_id)
    if table is None:
        print(f"Error: table not found: {name_or_id}", file=sys.stderr)
        return 1
    await workspace.remove_table(table.id)
    print(f"Removed {table.name}")
    return 0


async def clear_tables_cmd(workspace: Workspace, confirmed: bool) -> int:
    if not confirmed:
        print("Refusing to remove every table without --yes", file=sys.stderr)
        return 1
    count = len(workspace.registry)
    await workspace.clear_tables()
    print(f"Removed {count} tables")
    return 0


async def tag_table_cmd(workspace: Workspace, name_or_id: str, tags: list[str]) -> int:
    table = resolve_table(workspace, name_or_id)
    if table is None:
        print(f"Error: table not found: {name_or_id}", file=sys.stderr)
        return 1
    await workspace.update_table_tags(table.id, tags)
    print(f"{table.name}: {', '.join(workspace.registry.get(table.id).tags) or '(no tags)'}")
    return 0


async def tags_cmd(workspace: Workspace, args: argparse.Namespace) -> int:
    if args.tags_cmd == "add":
        if not await workspace.add_tag(args.tag):
            print(f"Tag already present or empty: {args.tag!r}")
    elif args.tags_cmd == "rm":
        if not await workspace.remove_tag(args.tag):
            print(f"Tag not found: {args.tag!r}")
    elif args.tags_cmd == "set":
        await workspace.replace_tags(args.tags)

    library = workspace.tag_library.tags
    print(f"Tag Library ({len(library)}): {', '.join(library) if library else '(empty)'}")
    return 0


async def autotag_cmd(workspace: Workspace) -> int:
    result = await workspace.auto_tag()
    report = result.value

    if report is None:
        return report_failure(result)

    print(f"Batches: {report.batches_total - report.batches_failed}/{report.batches_total} succeeded")
    print(f"Tables updated: {len(report.tables_updated)}")
    for name in report.tables_updated:
        print(f"  {name}: {', '.join(workspace.registry.get_by_name(name).tags)}")
    if report.tags_absorbed:
        print(f"New library tags: {', '.join(report.tags_absorbed)}")

    if not result.ok:
        return report_failure(result)
    if result.message:
        print(f"Warning: {result.message}", file=sys.stderr)
    return 0


async def ask_cmd(workspace: Workspace, requirement: str, save: bool) -> int:
    result = await workspace.generate_sql(requirement)
    if not result.ok:
        return report_failure(result)

    answer = result.value
    if answer.title:
        print(f"# {answer.title}\n")
    print(answer.body)
    if answer.analysis:
        print("\n" + answer.analysis)

    if save and answer.sql:
        query = await workspace.save_query(answer.sql, answer.title)
        print(f"\nSaved as {query.name} ({query.id})")
    return 0


async def saved_cmd(workspace: Workspace, args: argparse.Namespace) -> int:
    if args.saved_cmd == "ls":
        queries = workspace.saved_queries.list_queries()
        if not queries:
            print("No saved queries.")
        for query in queries:
            print(f"  {query.id}  {query.name}")
        return 0

    if args.saved_cmd == "show":
        query = workspace.saved_queries.get(args.id)
        if query is None:
            print(f"Error: saved query not found: {args.id}", file=sys.stderr)
            return 1
        print(f"-- {query.name}")
        print(query.code)
        return 0

    if args.saved_cmd == "clear":
        await workspace.clear_queries()
        print("Saved queries cleared")
        return 0

    if args.saved_cmd == "rename":
        done = await workspace.rename_query(args.id, args.name)
    else:
        done = await workspace.delete_query(args.id)
    if not done:
        print(f"Error: saved query not found: {args.id}", file=sys.stderr)
        return 1
    return 0
