import click
import json
import os

from ommrepo.config import load_config, get_config_path, generate_default_config
from ommrepo.output import emit_success


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("generate")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Where to write the file")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
def generate_config(output, force):
    """Write the default configuration file."""
    config_path = output or get_config_path()
    if os.path.exists(config_path) and not force:
        click.echo(f"Configuration already exists at {config_path} (use --force to overwrite)")
        return
    written = generate_default_config(config_path)
    emit_success("Default configuration written", data={"config_path": str(written)})


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSONL")
@click.option("--path", is_flag=True, help="Show the config file path being used")
def show_config(pretty, path):
    """Show the current configuration with all merges applied.

    By default, outputs single-line JSON (JSONL format).
    Use --pretty for human-readable formatted output.
    Use --path to see which config file is being used.
    """
    if path:
        print(json.dumps({"config_path": str(get_config_path())}))
        return

    config = load_config()

    if pretty:
        print(json.dumps(config, indent=2, ensure_ascii=False))
    else:
        print(json.dumps(config, ensure_ascii=False))
