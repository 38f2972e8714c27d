"""Command-line interface for fsblobstore."""

import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from .config_loader import ConfigLoader
from .domain import ContainerAccess, ListContainerOptions
from .exceptions import BlobStoreError, ConfigurationError
from .logging_config import configure_logging
from .storage_strategy import FilesystemStorageStrategy

VERSION = "0.1.0"


def echo_success(message, quiet=False):
    """Echo success message in green."""
    if not quiet:
        click.secho(f"✅ {message}", fg="green")


def echo_error(message):
    """Echo error message in red."""
    click.secho(f"❌ {message}", fg="red", err=True)


def echo_info(message, quiet=False):
    """Echo info message in blue."""
    if not quiet:
        click.secho(message, fg="blue")


def format_size(size):
    """Format a byte count in human-readable form."""
    if size is None:
        return "-"
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024


def parse_metadata(pairs):
    """Turn repeated KEY=VALUE options into a dict."""
    metadata = {}
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"expected KEY=VALUE, got '{pair}'", param_hint="--meta")
        key, value = pair.split("=", 1)
        metadata[key] = value
    return metadata


def get_store(ctx):
    """Build the storage strategy from the global options, once per invocation."""
    if "STORE" in ctx.obj:
        return ctx.obj["STORE"]

    loader = ConfigLoader()
    try:
        if ctx.obj.get("CONFIG"):
            config = loader.load_from_file(ctx.obj["CONFIG"])
            if ctx.obj.get("BASE_DIR"):
                config = config.model_copy(update={"base_dir": Path(ctx.obj["BASE_DIR"])})
        else:
            overrides = {}
            if ctx.obj.get("BASE_DIR"):
                overrides["base_dir"] = ctx.obj["BASE_DIR"]
            config = loader.from_env(overrides=overrides)
    except (ConfigurationError, FileNotFoundError) as e:
        echo_error(f"Configuration error: {e}")
        sys.exit(1)

    if ctx.obj.get("AUTO_DETECT"):
        config = config.model_copy(update={"auto_detect_content_type": True})
    if ctx.obj.get("JSON_LOGS") or config.json_logs:
        configure_logging(level=config.log_level, json_format=True)

    store = FilesystemStorageStrategy.from_config(config)
    ctx.obj["STORE"] = store
    return store


def run(operation):
    """Run a store operation, turning store errors into a clean exit."""
    try:
        return operation()
    except BlobStoreError as e:
        echo_error(str(e))
        sys.exit(1)


@click.group()
@click.version_option(version=VERSION)
@click.option(
    "--base-dir",
    envvar="FSBLOBSTORE_BASE_DIR",
    default=None,
    help="Base directory holding the containers (or set FSBLOBSTORE_BASE_DIR)",
)
@click.option(
    "--config", "config_path", default=None, help="YAML configuration file for the store"
)
@click.option(
    "--auto-detect-content-type",
    is_flag=True,
    help="Guess content types from file extensions",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json-logs", is_flag=True, help="Enable JSON-formatted structured logging")
@click.pass_context
def main(ctx, base_dir, config_path, auto_detect_content_type, quiet, json_logs):
    """Filesystem-backed object store.

    Containers are directories, blob keys are paths inside them.
    """
    load_dotenv()

    ctx.ensure_object(dict)
    ctx.obj["BASE_DIR"] = base_dir
    ctx.obj["CONFIG"] = config_path
    ctx.obj["AUTO_DETECT"] = auto_detect_content_type
    ctx.obj["QUIET"] = quiet
    ctx.obj["JSON_LOGS"] = json_logs


@main.command()
def version():
    """Show version information."""
    click.echo(f"fsblobstore version {VERSION}")
    click.echo(f"Python {sys.version.split()[0]}")


@main.group()
def container():
    """Manage containers."""
    pass


@container.command(name="create")
@click.argument("name")
@click.pass_context
def container_create(ctx, name):
    """Create a container."""
    store = get_store(ctx)
    created = run(lambda: store.create_container(name))
    if created:
        echo_success(f"Created container '{name}'", ctx.obj["QUIET"])
    else:
        echo_info(f"Container '{name}' already exists", ctx.obj["QUIET"])


@container.command(name="delete")
@click.argument("name")
@click.pass_context
def container_delete(ctx, name):
    """Delete a container and everything in it."""
    store = get_store(ctx)
    run(lambda: store.delete_container(name))
    echo_success(f"Deleted container '{name}'", ctx.obj["QUIET"])


@container.command(name="list")
@click.pass_context
def container_list(ctx):
    """List container names."""
    store = get_store(ctx)
    for name in sorted(run(lambda: list(store.get_all_container_names()))):
        click.echo(name)


@container.command(name="clear")
@click.argument("name")
@click.option("--prefix", default=None, help="Only clear keys starting with this prefix")
@click.option("--recursive", "-r", is_flag=True, help="Also clear nested pseudo-folders")
@click.pass_context
def container_clear(ctx, name, prefix, recursive):
    """Delete blobs from a container, keeping the container."""
    store = get_store(ctx)
    options = None
    if prefix is not None:
        options = ListContainerOptions(prefix=prefix, recursive=recursive)
    run(lambda: store.clear_container(name, options))
    echo_success(f"Cleared container '{name}'", ctx.obj["QUIET"])


@container.command(name="access")
@click.argument("name")
@click.option(
    "--set",
    "new_access",
    type=click.Choice([a.value for a in ContainerAccess]),
    default=None,
    help="Change the container access",
)
@click.pass_context
def container_access(ctx, name, new_access):
    """Show or change a container's access."""
    store = get_store(ctx)
    if new_access is not None:
        run(lambda: store.set_container_access(name, ContainerAccess(new_access)))
    click.echo(run(lambda: store.get_container_access(name)).value)


@main.command()
@click.argument("container_name")
@click.argument("key")
@click.argument("source", required=False, type=click.Path(allow_dash=True))
@click.option("--content-type", default=None, help="Content type to store with the blob")
@click.option("--meta", multiple=True, help="User metadata as KEY=VALUE (repeatable)")
@click.pass_context
def put(ctx, container_name, key, source, content_type, meta):
    """Store SOURCE (a file, or - for stdin) under KEY.

    A KEY ending in / creates a directory blob and needs no SOURCE.
    """
    store = get_store(ctx)
    blob = run(lambda: store.new_blob(key))
    blob.metadata.content_type = content_type
    blob.metadata.user_metadata = parse_metadata(meta)

    if not key.endswith("/"):
        if source is None:
            raise click.UsageError("SOURCE is required unless KEY ends with '/'")
        if source == "-":
            blob.set_payload(click.get_binary_stream("stdin"))
        else:
            blob.set_payload(Path(source))

    etag = run(lambda: store.put_blob(container_name, blob))
    echo_success(f"Stored '{key}' (etag {etag})", ctx.obj["QUIET"])


@main.command()
@click.argument("container_name")
@click.argument("key")
@click.option("--output", "-o", default=None, help="Write content to this file instead of stdout")
@click.pass_context
def get(ctx, container_name, key, output):
    """Write the content of a blob to stdout or a file."""
    store = get_store(ctx)
    blob = run(lambda: store.get_blob(container_name, key))
    if blob is None:
        echo_error(f"Blob not found: {container_name}/{key}")
        sys.exit(1)
    if blob.payload is None:
        echo_info(f"'{key}' is a directory blob", ctx.obj["QUIET"])
        return

    data = run(lambda: blob.payload.read())
    if output:
        Path(output).write_bytes(data)
        echo_success(f"Wrote {format_size(len(data))} to {output}", ctx.obj["QUIET"])
    else:
        click.get_binary_stream("stdout").write(data)


@main.command()
@click.argument("container_name")
@click.argument("key")
@click.pass_context
def rm(ctx, container_name, key):
    """Remove a blob."""
    store = get_store(ctx)
    run(lambda: store.remove_blob(container_name, key))
    echo_success(f"Removed '{key}'", ctx.obj["QUIET"])


@main.command()
@click.argument("container_name")
@click.option("--prefix", default=None, help="Only list keys starting with this prefix")
@click.option("--delimiter", default=None, help="Roll keys up to this delimiter")
@click.option("--recursive", "-r", is_flag=True, help="List nested keys too")
@click.option("--long", "-l", "long_format", is_flag=True, help="Show size and modification time")
@click.pass_context
def ls(ctx, container_name, prefix, delimiter, recursive, long_format):
    """List the keys in a container."""
    store = get_store(ctx)
    options = ListContainerOptions(prefix=prefix, delimiter=delimiter, recursive=recursive)
    result = run(lambda: store.list(container_name, options))
    for entry in result:
        if long_format:
            modified = entry.last_modified.isoformat() if entry.last_modified else "-"
            click.echo(f"{format_size(entry.size):>8}  {modified}  {entry.name}")
        else:
            click.echo(entry.name)


@main.command()
@click.argument("container_name")
@click.argument("key")
@click.pass_context
def stat(ctx, container_name, key):
    """Show a blob's metadata."""
    store = get_store(ctx)
    metadata = run(lambda: store.get_blob_metadata(container_name, key))
    if metadata is None:
        echo_error(f"Blob not found: {container_name}/{key}")
        sys.exit(1)

    click.echo(f"Key:           {metadata.name}")
    click.echo(f"Size:          {metadata.size}")
    click.echo(f"Content-Type:  {metadata.content_type or '-'}")
    click.echo(f"ETag:          {metadata.etag}")
    click.echo(f"Last-Modified: {metadata.last_modified.isoformat()}")
    for meta_key, meta_value in sorted(metadata.user_metadata.items()):
        click.echo(f"x-meta-{meta_key}: {meta_value}")


if __name__ == "__main__":
    main()
