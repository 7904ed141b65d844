"""Tests for the subnetctl CLI."""
import pytest
import yaml
from click.testing import CliRunner
from sqlalchemy.exc import IntegrityError

from directory import SubnetDirectory
from subnetctl import cli


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("SUBNETCTL_LOG_LEVEL", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.dump(
            {
                "database": {"sqlite_url": "sqlite:///nodes.db"},
                "cluster_networks": [
                    {"cidr": "10.128.0.0/22", "host_subnet_length": 8},
                    {"cidr": "10.130.0.0/23", "host_subnet_length": 8},
                ],
            }
        )
    )
    return path


@pytest.fixture
def run(config_file):
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(cli, ["-c", str(config_file), *args])

    return invoke


def test_add_nodes(run):
    result = run("node", "add", "node-1", "--host-ip", "192.168.0.11")
    assert result.exit_code == 0, result.output
    assert "✅ Allocated: node-1 | 10.128.0.0/24" in result.output

    # Each run rebuilds the allocator from the directory
    result = run("node", "add", "node-2")
    assert "10.128.1.0/24" in result.output

    result = run("node", "add", "node-1")
    assert result.exit_code == 0
    assert "already has 10.128.0.0/24" in result.output


def test_falls_back_to_next_network(run):
    for i in range(4):
        assert run("node", "add", f"node-{i}").exit_code == 0

    result = run("node", "add", "node-4")
    assert "10.130.0.0/24" in result.output
    run("node", "add", "node-5")

    result = run("node", "add", "node-6")
    assert result.exit_code == 1
    assert "error allocating network for node node-6" in result.output


def test_delete_node(run):
    run("node", "add", "node-1")
    result = run("node", "delete", "node-1")
    assert result.exit_code == 0
    assert "✅ Released: node-1 | 10.128.0.0/24" in result.output

    result = run("node", "delete", "node-1")
    assert result.exit_code == 1
    assert "not found" in result.output


def test_import_node(run):
    result = run("node", "import", "node-0", "10.128.0.9/24")
    assert result.exit_code == 0, result.output
    assert "✅ Imported: node-0 | 10.128.0.0/24" in result.output

    result = run("node", "add", "node-1")
    assert "10.128.1.0/24" in result.output

    result = run("node", "import", "node-9", "10.128.1.0/24")
    assert result.exit_code == 1
    assert "assigned to another node" in result.output

    result = run("node", "import", "node-9", "192.168.0.0/24")
    assert result.exit_code == 1
    assert "not found in the cluster networks" in result.output


def test_list_and_report(run):
    result = run("node", "list")
    assert "No node subnets found." in result.output

    run("node", "add", "node-1", "--host-ip", "192.168.0.11")
    result = run("node", "list")
    assert "node-1" in result.output
    assert "192.168.0.11" in result.output

    result = run("report")
    assert result.exit_code == 0
    assert "1/4 subnets" in result.output
    assert "node-1" in result.output

    result = run("networks")
    assert "10.128.0.0/22" in result.output
    assert "10.130.0.0/23" in result.output


def test_bad_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.dump(
            {
                "database": {"sqlite_url": "sqlite:///nodes.db"},
                "cluster_networks": [{"cidr": "10.128.0.0/24", "host_subnet_length": 9}],
            }
        )
    )
    result = CliRunner().invoke(cli, ["-c", str(path), "networks"])
    assert result.exit_code == 1
    assert "no room for subnets" in result.output


def test_delete_node_outside_configured_networks(run, config_file):
    run("node", "add", "node-1")

    config = yaml.safe_load(config_file.read_text())
    config["cluster_networks"] = [{"cidr": "10.200.0.0/22", "host_subnet_length": 8}]
    config_file.write_text(yaml.dump(config))

    result = run("node", "delete", "node-1")
    assert result.exit_code == 0, result.output
    assert "✅ Released: node-1 | 10.128.0.0/24" in result.output

    result = run("node", "list")
    assert "No node subnets found." in result.output


def test_negative_host_bits(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.dump(
            {
                "database": {"sqlite_url": "sqlite:///nodes.db"},
                "cluster_networks": [{"cidr": "10.128.0.0/22", "host_subnet_length": -2}],
            }
        )
    )
    result = CliRunner().invoke(cli, ["-c", str(path), "networks"])
    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert "❌ host capacity must be a positive integer" in result.output


def test_add_reports_subnet_collision(run, monkeypatch):
    def taken(self, host, subnet, host_ip=None):
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    monkeypatch.setattr(SubnetDirectory, "assign", taken)
    result = run("node", "add", "node-1")
    assert result.exit_code == 1
    assert "was taken by another node" in result.output
    assert "already has a subnet" not in result.output
