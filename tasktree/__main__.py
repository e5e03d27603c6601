"""Entry point for tasktree maintenance commands.

This module allows running tasktree as a module:
    python -m tasktree <command>

Or as an installed command:
    tasktree <command>

Commands:
    init-db                              Create the database tables
    rebuild-hierarchy --project-id ID    Recompute depth and path of every task
    init-ordering --project-id ID        Compact sort orders and fill in move bookkeeping
    show --project-id ID                 Print the project tree
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from tasktree.config import Config
from tasktree.database import DatabaseManager
from tasktree.logging_config import get_logger, setup_logging
from tasktree.services.errors import TaskServiceError
from tasktree.services.project_service import ProjectService
from tasktree.services.task_service import TaskService

# Initialize logger for this module
logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="tasktree",
        description="Maintenance commands for hierarchical task trees.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: ~/.tasktree/config.ini)",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy async database URL (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database tables")

    rebuild = subparsers.add_parser(
        "rebuild-hierarchy", help="Recompute depth and path for every task of a project"
    )
    rebuild.add_argument("--project-id", required=True)

    ordering = subparsers.add_parser(
        "init-ordering", help="Compact sort orders and initialize move bookkeeping"
    )
    ordering.add_argument("--project-id", required=True)

    show = subparsers.add_parser("show", help="Print a project's task tree")
    show.add_argument("--project-id", required=True)

    return parser


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-based SQLite database."""
    if not database_url.startswith("sqlite") or ":memory:" in database_url:
        return
    _, _, db_path = database_url.partition(":///")
    if db_path:
        Path(db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)


async def _run(parsed: argparse.Namespace, config: Config) -> int:
    db_config = config.get_database_config()
    hierarchy_config = config.get_hierarchy_config()
    database_url = parsed.database_url or db_config['url']

    _ensure_sqlite_directory(database_url)
    db_manager = DatabaseManager(database_url, echo=db_config['echo'])
    await db_manager.initialize()

    try:
        if parsed.command == "init-db":
            print(f"Database ready: {database_url}")
            return 0

        async with db_manager.get_session() as session:
            service = TaskService(
                session,
                max_traversal_depth=hierarchy_config['max_traversal_depth'],
                default_priority=hierarchy_config['default_priority'],
            )

            if parsed.command == "rebuild-hierarchy":
                count = await service.rebuild_hierarchy(parsed.project_id)
                print(f"Rebuilt hierarchy for {count} task(s)")
                return 0

            if parsed.command == "init-ordering":
                count = await service.initialize_ordering(parsed.project_id)
                print(f"Initialized ordering for {count} task(s)")
                return 0

            if parsed.command == "show":
                project = await ProjectService(session).get_project(parsed.project_id)
                if project is None:
                    print(f"Project {parsed.project_id} not found", file=sys.stderr)
                    return 1

                print(f"{project.name} ({project.task_count} tasks, {project.completion_percentage}% done)")
                for task in await service.get_project_tree(parsed.project_id):
                    indent = "  " * task.depth
                    print(
                        f"{indent}{task.sort_order}. {task.title} "
                        f"[{task.status.value}, {task.priority.value}, {task.completion_percentage}%]"
                    )
                return 0

        return 1
    finally:
        await db_manager.close()


def main(args: Optional[list] = None) -> int:
    """Main entry point for tasktree.

    Args:
        args: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if args is None:
        args = sys.argv[1:]

    parsed = build_parser().parse_args(args)
    config = Config(parsed.config)

    # Initialize logging before any other operations
    setup_logging(
        log_level=parsed.log_level or config.get_logging_config()['level'],
        console=False,
    )

    try:
        exit_code = asyncio.run(_run(parsed, config))
        logger.info(f"Command '{parsed.command}' finished with exit code {exit_code}")
        return exit_code
    except TaskServiceError as e:
        logger.error(f"Command '{parsed.command}' failed: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("tasktree interrupted by user (Ctrl+C)")
        return 1
    except Exception as e:
        logger.error(f"Error running command '{parsed.command}'", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
