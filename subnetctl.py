#!/usr/bin/env python3
"""
🧩 Host Subnet Allocator CLI
- One subnet per cluster node, carved out of the configured cluster networks
- Node -> subnet records kept in the subnet directory (SQLite/Postgres)
- Allocator state rebuilt from the directory on every run
"""

import logging

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlalchemy.exc import IntegrityError

from config import load_settings
from directory import SubnetDirectory
from errors import SubnetAllocatorError
from logging_config import setup_logging
from netcodec import parse_subnet
from registry import build_registry

console = Console()
logger = logging.getLogger("subnetctl")


class Controller:
    """Subnet directory plus the allocator seeded from it"""

    def __init__(self, config_file=None):
        self.settings = load_settings(config_file)
        setup_logging(self.settings.log_level)
        self.directory = SubnetDirectory(self.settings.database_url)
        self.registry = build_registry(self.settings.networks, self.directory)

    def add_node(self, name, host_ip=None):
        """Allocate and record a subnet; returns (subnet, created)"""
        existing = self.directory.get(name)
        if existing:
            return existing.subnet, False

        subnet = self.registry.allocate(name)
        try:
            self.directory.assign(name, subnet, host_ip)
        except IntegrityError:
            self.registry.release(subnet)
            raise
        logger.info("Node %s -> %s", name, subnet)
        return subnet, True

    def import_node(self, name, subnet, host_ip=None):
        """Record a subnet that was assigned outside this tool"""
        subnet = str(parse_subnet(subnet))
        self.registry.mark_allocated(subnet)
        self.directory.assign(name, subnet, host_ip)
        return subnet

    def delete_node(self, name):
        record = self.directory.get(name)
        if not record:
            return None
        try:
            self.registry.release(record.subnet)
        except SubnetAllocatorError as e:
            # Stale record, e.g. its cluster network was removed from config
            logger.error("Releasing %s for node %s: %s", record.subnet, name, e)
        self.directory.remove(name)
        logger.info("Removed node %s (%s)", name, record.subnet)
        return record.subnet


def _bar(percent):
    return "█" * min(int(percent / 5), 20) + "░" * max(20 - int(percent / 5), 0)


def _controller(ctx) -> Controller:
    obj = ctx.ensure_object(dict)
    if "controller" not in obj:
        try:
            obj["controller"] = Controller(obj.get("config_file"))
        except SubnetAllocatorError as e:
            click.echo(f"❌ {e}")
            ctx.exit(1)
    return obj["controller"]


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option("1.0", "--version", "-v")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True),
    help="Path to config.yaml file",
)
@click.pass_context
def cli(ctx, config_file):
    """🧩 Host Subnet Allocator

    One subnet per node | Round-robin | No Overlaps
    """
    ctx.ensure_object(dict)["config_file"] = config_file


@cli.command()
def quickstart():
    """🚀 Quickstart guide"""
    click.echo("""
1️⃣  ./subnetctl.py networks
2️⃣  ./subnetctl.py node add node-1 --host-ip 192.168.0.11
3️⃣  ./subnetctl.py node import node-0 10.128.0.0/23
4️⃣  ./subnetctl.py node list
5️⃣  ./subnetctl.py node delete node-1
6️⃣  ./subnetctl.py report
    """)


# ============ CLUSTER NETWORKS ============


@cli.command()
@click.pass_context
def networks(ctx):
    """🌐 List cluster networks"""
    ctl = _controller(ctx)
    table = Table(
        "CIDR", "Host bits", "Subnet", "Capacity", "In use", box=box.ROUNDED
    )
    for pool in ctl.registry.pools:
        table.add_row(
            str(pool.network),
            str(pool.host_bits),
            f"/{pool.subnet_prefixlen}",
            str(pool.num_subnets),
            str(pool.in_use),
        )
    console.print(table)


# ============ NODES ============


@cli.group()
def node():
    """🖥️ Nodes - one subnet each"""
    pass


@node.command()
@click.argument("name")
@click.option("--host-ip", default=None, help="Node's own IP address")
@click.pass_context
def add(ctx, name, host_ip):
    """Allocate a subnet for a node"""
    ctl = _controller(ctx)
    try:
        subnet, created = ctl.add_node(name, host_ip)
    except SubnetAllocatorError as e:
        click.echo(f"❌ {e}")
        ctx.exit(1)
    except IntegrityError:
        if ctl.directory.get(name):
            click.echo(f"❌ Node '{name}' already has a subnet")
        else:
            click.echo(f"❌ Subnet picked for '{name}' was taken by another node, retry")
        ctx.exit(1)

    if created:
        click.echo(f"✅ Allocated: {name} | {subnet}")
    else:
        click.echo(f"ℹ️  Node '{name}' already has {subnet}")


@node.command(name="import")
@click.argument("name")
@click.argument("subnet")
@click.option("--host-ip", default=None, help="Node's own IP address")
@click.pass_context
def import_(ctx, name, subnet, host_ip):
    """Record a subnet assigned elsewhere"""
    ctl = _controller(ctx)
    if ctl.directory.get(name):
        click.echo(f"❌ Node '{name}' already has a subnet")
        ctx.exit(1)
    try:
        subnet = ctl.import_node(name, subnet, host_ip)
    except SubnetAllocatorError as e:
        click.echo(f"❌ {e}")
        ctx.exit(1)
    except IntegrityError:
        click.echo(f"❌ Subnet {subnet} is assigned to another node")
        ctx.exit(1)
    click.echo(f"✅ Imported: {name} | {subnet}")


@node.command(name="list")
@click.pass_context
def list_nodes(ctx):
    """List all node subnets"""
    ctl = _controller(ctx)
    records = ctl.directory.list_subnets()
    if not records:
        click.echo("No node subnets found.")
        return

    table = Table("Node", "Subnet", "Host IP", box=box.ROUNDED)
    for r in records:
        table.add_row(r.host, r.subnet, r.host_ip or "-")
    console.print(table)


@node.command()
@click.argument("name")
@click.pass_context
def delete(ctx, name):
    """Release a node's subnet"""
    ctl = _controller(ctx)
    subnet = ctl.delete_node(name)
    if subnet is None:
        click.echo(f"❌ Node '{name}' not found")
        ctx.exit(1)
    click.echo(f"✅ Released: {name} | {subnet}")


# ============ REPORTS ============


@cli.command()
@click.pass_context
def report(ctx):
    """📊 Utilization report"""
    ctl = _controller(ctx)
    console.print(Panel("🧩 Subnet Utilization Report", style="bold cyan"))

    records = ctl.directory.list_subnets()
    for pool in ctl.registry.pools:
        used = pool.in_use
        util = (used / pool.num_subnets) * 100
        console.print(f"\n🌐 {pool.network} (/{pool.subnet_prefixlen} per node)")
        console.print(
            f"   Utilization: {used}/{pool.num_subnets} subnets {_bar(util)} {util:.1f}%"
        )

        nodes = [r for r in records if pool.contains(r.subnet)]
        for i, r in enumerate(nodes):
            prefix = "   └──" if i == len(nodes) - 1 else "   ├──"
            console.print(f"{prefix} 🖥️  {r.host} ({r.subnet})")
        if not nodes:
            console.print("   (no nodes)")


if __name__ == "__main__":
    cli()
