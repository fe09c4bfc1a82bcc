"""Command line entry point for indexing and searching repositories."""

import json
import sys

import click

from . import __version__
from .config import STALE_STATUS_MAX_AGE_SECONDS, DEFAULT_SEARCH_LIMIT, DEFAULT_SIMILARITY_THRESHOLD, configure_logging
from .exceptions import CodeIndexError
from .indexing import IndexBuilder, EmbeddingProcessor, index_project, resolve_project_id
from .indexing.index_builder import normalize_repo_path
from .retrieval import CodeSearch
from .storage import create_store


def _open_store(ctx, embedding_processor=None):
    dimension = embedding_processor.get_embedding_dimension() if embedding_processor else None
    try:
        return create_store(ctx.obj["backend"], dimension=dimension)
    except CodeIndexError as e:
        raise click.ClickException(str(e))


def _create_embedding_processor():
    try:
        return EmbeddingProcessor()
    except (CodeIndexError, ValueError) as e:
        raise click.ClickException(str(e))


def _echo_json(data):
    click.echo(json.dumps(data, indent=2, default=str))


@click.group()
@click.version_option(__version__, prog_name="code-index")
@click.option("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO)")
@click.option(
    "--backend",
    type=click.Choice(["postgres", "faiss"]),
    default=None,
    help="Index store backend (default: STORE_BACKEND)",
)
@click.pass_context
def cli(ctx, log_level, backend):
    """Index source repositories into embeddings and search them."""
    configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["backend"] = backend


@cli.command("add-project")
@click.argument("project_id")
@click.option("--name", default=None, help="Display name (default: the project id)")
@click.option("--repo-path", type=click.Path(exists=True, file_okay=False), default=None)
@click.pass_context
def add_project(ctx, project_id, name, repo_path):
    """Register a project so it can be indexed."""
    store = _open_store(ctx)
    try:
        project = store.register_project(
            project_id,
            name or project_id,
            normalize_repo_path(repo_path) if repo_path else None
        )
    except CodeIndexError as e:
        raise click.ClickException(str(e))
    finally:
        store.close()
    click.echo(f"Registered project {project.project_id}")


@cli.command()
@click.argument("repo_path", type=click.Path(), default=".")
@click.option("--project-id", default=None, help="Project id (default: read from .kanban.json)")
@click.option("--pattern", "patterns", multiple=True, help="Glob pattern of files to index (repeatable)")
@click.option("--batch-size", type=int, default=None, help="Chunks embedded per flush")
@click.option("--incremental", is_flag=True, help="Skip files whose content is unchanged")
@click.pass_context
def index(ctx, repo_path, project_id, patterns, batch_size, incremental):
    """Index REPO_PATH and print the run result as JSON."""
    try:
        embedding_processor = EmbeddingProcessor()
        store = create_store(ctx.obj["backend"], dimension=embedding_processor.get_embedding_dimension())
    except (CodeIndexError, ValueError) as e:
        _echo_json({"files_processed": 0, "chunks_created": 0, "duration_ms": 0,
                    "status": "error", "error": str(e)})
        ctx.exit(1)

    try:
        result = index_project(
            project_id=project_id,
            repo_path=repo_path,
            patterns=list(patterns) or None,
            batch_size=batch_size,
            incremental=incremental,
            store=store,
            embedding_processor=embedding_processor
        )
    finally:
        store.close()

    _echo_json(result)
    if result["status"] != "success":
        ctx.exit(1)


@cli.command()
@click.argument("repo_path", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--project-id", default=None, help="Project id (default: read from .kanban.json)")
@click.option("--file", "files", multiple=True, help="Changed file, relative to REPO_PATH (repeatable)")
@click.option("--deleted", "deleted_files", multiple=True, help="Deleted file, relative to REPO_PATH (repeatable)")
@click.pass_context
def update(ctx, repo_path, project_id, files, deleted_files):
    """Re-index changed files and drop deleted ones."""
    embedding_processor = _create_embedding_processor()
    store = _open_store(ctx, embedding_processor)
    try:
        builder = IndexBuilder(store, embedding_processor)
        counts = builder.update_files(repo_path, project_id=project_id,
                                      files=files, deleted_files=deleted_files)
    except CodeIndexError as e:
        raise click.ClickException(str(e))
    finally:
        store.close()
    _echo_json(counts)


@cli.command()
@click.argument("repo_path", type=click.Path(), default=".")
@click.option("--project-id", default=None, help="Project id (default: read from .kanban.json)")
@click.option("--max-age", type=int, default=STALE_STATUS_MAX_AGE_SECONDS, show_default=True,
              help="Seconds after which an unfinished run counts as stale")
@click.pass_context
def status(ctx, repo_path, project_id, max_age):
    """Show the index status of REPO_PATH."""
    store = _open_store(ctx)
    try:
        project_id = resolve_project_id(project_id, repo_path)
        record = store.get_index_status(project_id, normalize_repo_path(repo_path))
        if record is None:
            click.echo(f"No index status for project {project_id} at {repo_path}")
            return
        stale = IndexBuilder(store, embedding_processor=None).find_stale_status(
            project_id, repo_path, max_age
        )
    except CodeIndexError as e:
        raise click.ClickException(str(e))
    finally:
        store.close()

    data = record.to_dict()
    data["stale"] = stale is not None
    _echo_json(data)


@cli.command()
@click.argument("repo_path", type=click.Path(), default=".")
@click.option("--project-id", default=None, help="Project id (default: read from .kanban.json)")
@click.option("--max-age", type=int, default=STALE_STATUS_MAX_AGE_SECONDS, show_default=True,
              help="Seconds after which an unfinished run counts as stale")
@click.pass_context
def recover(ctx, repo_path, project_id, max_age):
    """Mark a stale indexing run of REPO_PATH as failed."""
    store = _open_store(ctx)
    try:
        project_id = resolve_project_id(project_id, repo_path)
        recovered = IndexBuilder(store, embedding_processor=None).recover_stale_status(
            project_id, repo_path, max_age
        )
    except CodeIndexError as e:
        raise click.ClickException(str(e))
    finally:
        store.close()

    if recovered is None:
        click.echo("No stale indexing run found")
    else:
        _echo_json(recovered.to_dict())


@cli.command()
@click.argument("query")
@click.option("--project-id", default=None, help="Project id (default: read from REPO_PATH/.kanban.json)")
@click.option("--repo-path", type=click.Path(), default=".", help="Repository holding .kanban.json")
@click.option("--language", "languages", multiple=True, help="Restrict to a language tag (repeatable)")
@click.option("--directory", "directories", multiple=True, help="Restrict to a directory (repeatable)")
@click.option("--limit", type=int, default=DEFAULT_SEARCH_LIMIT, show_default=True)
@click.option("--threshold", type=float, default=DEFAULT_SIMILARITY_THRESHOLD, show_default=True,
              help="Minimum similarity between 0 and 1")
@click.pass_context
def search(ctx, query, project_id, repo_path, languages, directories, limit, threshold):
    """Semantic search over an indexed project."""
    embedding_processor = _create_embedding_processor()
    store = _open_store(ctx, embedding_processor)
    try:
        project_id = resolve_project_id(project_id, repo_path)
        results = CodeSearch(store, embedding_processor).search(
            project_id,
            query,
            languages=list(languages) or None,
            directories=list(directories) or None,
            limit=limit,
            similarity_threshold=threshold
        )
    except (CodeIndexError, ValueError) as e:
        raise click.ClickException(str(e))
    finally:
        store.close()
    _echo_json(results)


def main():
    cli(obj={})


if __name__ == "__main__":
    sys.exit(main())
