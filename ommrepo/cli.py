#!/usr/bin/env python3

import click

from ommrepo.config import load_config, configure_logging
from ommrepo.commands.generate import generate_handler
from ommrepo.commands.entries import list_handler, info_handler, show_handler, remove_handler
from ommrepo.commands.config import config_cmd


@click.group()
@click.version_option(package_name='ommrepo')
@click.option('--verbose', '-v', is_flag=True, help='Log debug output to stderr')
def cli(verbose):
    """ommrepo - Maintain Open Mod Manager repository indexes.

    Builds and updates the XML index that lists the package archives of a
    mod repository, with checksums, logos and descriptions.
    """
    configure_logging(load_config(), verbose=verbose)


cli.add_command(generate_handler, name='generate')
cli.add_command(list_handler, name='list')
cli.add_command(info_handler, name='info')
cli.add_command(show_handler, name='show')
cli.add_command(remove_handler, name='remove')
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
