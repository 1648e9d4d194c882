"""Entry point of the nimbus command-line tool."""

import click

from nimbus import __version__
from nimbus.cli.commands.new import new
from nimbus.cli.commands.package import package
from nimbus.cli.commands.publish import publish
from nimbus.cli.commands.status import status


@click.group()
@click.version_option(version=__version__, prog_name="nimbus")
def main() -> None:
    """Nimbus - package and publish cloud services.

    Commands:

        new      Create a new service
        package  Build the cloud package of a service
        publish  Package a service and publish it
        status   Check the deployment status of a published service
    """


main.add_command(new)
main.add_command(package)
main.add_command(publish)
main.add_command(status)


if __name__ == "__main__":
    main()
