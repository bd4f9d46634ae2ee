"""
DataUnison CLI

Read-only command-line front end for the DataUnison SDK.

Commands:
  whoami        - Show the address of the configured private key
  project       - Show the project's chain, RPC endpoint and registrar
  summary       - Resolve a summary reference to its contract address
  reference     - Resolve a summary contract address to its reference
  interactions  - List the interactions of a summary contract
  viewer        - Show an entity's permission level on an interaction
  merkle-root   - Show the data merkle root of an interaction
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Awaitable, Callable, Optional

import click

from .blockchain import DataUnisonBlockchain
from .chain.abi import Role
from .chain.wallet import address_of
from .client import DataUnisonClient
from .config import DEFAULT_GRAPHQL_URL, load_env
from .errors import DataUnisonError

VERSION = "1.0.0"


# ============ Helpers ============


def _fail(message: str) -> None:
    click.secho(f"ERROR: {message}", fg="red")
    sys.exit(1)


def _run(ctx: click.Context, action: Callable[[DataUnisonClient], Awaitable[Any]]) -> Any:
    """Connect a client for the selected project and run ``action`` with it."""
    opts = ctx.obj
    if not opts["api_key"]:
        _fail("No API key. Use --api-key or set DATAUNISON_API_KEY.")
    if opts["project_id"] is None:
        _fail("No project. Use --project-id or set DATAUNISON_PROJECT_ID.")

    async def runner() -> Any:
        async with DataUnisonClient(opts["api_key"], url=opts["url"]) as client:
            await client.connect(opts["project_id"], private_key=opts["private_key"])
            return await action(client)

    try:
        return asyncio.run(runner())
    except DataUnisonError as exc:
        _fail(str(exc))


async def _summary(client: DataUnisonClient, reference: str) -> DataUnisonBlockchain:
    chain = client.blockchain()
    await chain.connect_summary(reference)
    return chain


# ============ Main CLI Group ============


@click.group()
@click.version_option(version=VERSION, prog_name="dataunison")
@click.option("--api-key", envvar="DATAUNISON_API_KEY", default=None, help="Project API key")
@click.option("--project-id", envvar="DATAUNISON_PROJECT_ID", type=int, default=None, help="Project ID")
@click.option(
    "--private-key",
    envvar="DATAUNISON_PRIVATE_KEY",
    default=None,
    help="Hex private key (read-only if omitted)",
)
@click.option(
    "--url",
    envvar="DATAUNISON_GRAPHQL_URL",
    default=DEFAULT_GRAPHQL_URL,
    help="GraphQL endpoint",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    api_key: Optional[str],
    project_id: Optional[int],
    private_key: Optional[str],
    url: str,
    verbose: bool,
) -> None:
    """DataUnison project registry and contract client."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = {
        "api_key": api_key,
        "project_id": project_id,
        "private_key": private_key,
        "url": url,
    }


# ============ Identity ============


@cli.command()
@click.pass_context
def whoami(ctx: click.Context) -> None:
    """Show the address of the configured private key."""
    private_key = ctx.obj["private_key"]
    if not private_key:
        click.echo("No private key configured.")
        click.echo("Use --private-key or set DATAUNISON_PRIVATE_KEY.")
        sys.exit(1)
    try:
        click.echo(f"Address: {address_of(private_key)}")
    except DataUnisonError as exc:
        _fail(str(exc))


@cli.command()
@click.pass_context
def project(ctx: click.Context) -> None:
    """Show the project's chain, RPC endpoint and registrar."""

    async def action(client: DataUnisonClient) -> None:
        info = client.project
        click.echo(f"=== Project #{info.id} ===")
        click.echo(f"  Chain ID:   {info.chain_id}")
        click.echo(f"  RPC:        {info.rpc}")
        click.echo(f"  Registrar:  {info.registrar or '(none)'}")
        if client.signer:
            click.echo(f"  Signer:     {client.signer.address}")
        else:
            click.echo("  Signer:     (read-only)")

    _run(ctx, action)


# ============ Registrar ============


@cli.command()
@click.argument("reference")
@click.pass_context
def summary(ctx: click.Context, reference: str) -> None:
    """Resolve a summary REFERENCE to its contract address."""

    async def action(client: DataUnisonClient) -> None:
        address = await client.blockchain().resolve_summary(reference)
        click.echo(address)

    _run(ctx, action)


@cli.command()
@click.argument("address")
@click.pass_context
def reference(ctx: click.Context, address: str) -> None:
    """Resolve a summary contract ADDRESS to its reference."""

    async def action(client: DataUnisonClient) -> None:
        click.echo(await client.blockchain().resolve_reference(address))

    _run(ctx, action)


# ============ Summary ============


@cli.command()
@click.argument("reference")
@click.pass_context
def interactions(ctx: click.Context, reference: str) -> None:
    """List the interactions registered in the summary REFERENCE."""

    async def action(client: DataUnisonClient) -> None:
        chain = await _summary(client, reference)
        length = await chain.get_interactions_length()

        click.echo(f"=== Summary {reference} ===")
        click.echo(f"  Address:    {chain.summary_address}")
        click.echo(f"  Custodian:  {await chain.custodian()}")
        click.echo(f"  Interactions: {length}")
        if length == 0:
            return

        for index, record in enumerate(await chain.get_interactions(list(range(length)))):
            status = click.style("enabled", fg="green") if record.enabled else click.style("disabled", fg="yellow")
            role = "owner" if record.role is Role.OWNER else "provider"
            click.echo(f"  #{index}  {record.interaction}  {role:<8}  {status}")

    _run(ctx, action)


@cli.command()
@click.argument("reference")
@click.argument("interaction_id", type=int)
@click.argument("entity")
@click.pass_context
def viewer(ctx: click.Context, reference: str, interaction_id: int, entity: str) -> None:
    """Show ENTITY's permission level on interaction INTERACTION_ID."""

    async def action(client: DataUnisonClient) -> None:
        chain = await _summary(client, reference)
        level = await chain.get_viewer(interaction_id, entity)
        click.echo(f"Permission level: {level}")

    _run(ctx, action)


@cli.command("merkle-root")
@click.argument("reference")
@click.argument("interaction_id", type=int)
@click.pass_context
def merkle_root(ctx: click.Context, reference: str, interaction_id: int) -> None:
    """Show the data merkle root of interaction INTERACTION_ID."""

    async def action(client: DataUnisonClient) -> None:
        chain = await _summary(client, reference)
        click.echo(await chain.get_data_merkle_root(interaction_id))

    _run(ctx, action)


# ============ Entry Points ============


def main() -> None:
    """DataUnison CLI entry point."""
    load_env()
    cli()


if __name__ == "__main__":
    main()
