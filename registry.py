"""
Subnet Registry - all cluster networks, tried in configured order
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from allocator import SubnetAllocator
from errors import AllocationFailed, NoOwningPool, PoolExhausted, SubnetAllocatorError
from netcodec import parse_subnet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkConfig:
    """One cluster network: parent CIDR plus host bits per subnet"""

    cidr: str
    host_subnet_length: int


class SubnetRegistry:
    def __init__(self, networks: Optional[Iterable] = None):
        self._pools: List[Tuple[NetworkConfig, SubnetAllocator]] = []
        if networks is not None:
            self.initialize(networks)

    def __repr__(self):
        return f"<SubnetRegistry {[str(p.network) for p in self.pools]}>"

    @property
    def pools(self) -> List[SubnetAllocator]:
        return [pool for _, pool in self._pools]

    def initialize(self, networks: Iterable) -> None:
        """
        Build one allocator per cluster network, in order.
        Accepts NetworkConfig values, (cidr, host_bits) pairs or dicts.
        Any bad network aborts the whole thing.
        """
        pools = []
        for entry in networks:
            config = _as_config(entry)
            pool = SubnetAllocator(config.cidr, config.host_subnet_length)
            logger.info(
                "Cluster network %s: %d subnets of /%d",
                pool.network,
                pool.num_subnets,
                pool.subnet_prefixlen,
            )
            pools.append((config, pool))
        self._pools = pools

    def reconcile(self, assignments: Iterable) -> List[SubnetAllocatorError]:
        """
        Mark subnets that are already handed out.
        Entries are subnet strings or records with a `subnet` attribute.
        Bad entries are logged and skipped; the errors are returned.
        """
        errors = []
        marked = 0
        for entry in assignments:
            subnet = getattr(entry, "subnet", entry)
            try:
                self.mark_allocated(subnet)
            except SubnetAllocatorError as e:
                logger.error("Skipping existing subnet %s: %s", subnet, e)
                errors.append(e)
            else:
                marked += 1
        logger.info("Reconciled %d existing subnets (%d skipped)", marked, len(errors))
        return errors

    def allocate(self, requester: str) -> str:
        """Allocate a subnet for requester from the first pool with room"""
        err = None
        for pool in self.pools:
            try:
                subnet = pool.allocate()
            except PoolExhausted as e:
                logger.debug("%s exhausted, trying next network", pool.network)
                err = e
                continue
            except Exception as e:
                logger.error("Error allocating network from %s: %s", pool.network, e)
                err = e
                continue
            logger.info("Allocated %s for %s", subnet, requester)
            return str(subnet)
        raise AllocationFailed(requester, err)

    def mark_allocated(self, subnet: str) -> None:
        pool, network = self.pool_for(subnet)
        pool.mark_allocated(network)

    def release(self, subnet: str) -> None:
        pool, network = self.pool_for(subnet)
        pool.release(network)
        logger.info("Released %s", network)

    def pool_for(self, subnet: str):
        """Find the allocator whose cluster network holds subnet"""
        network = parse_subnet(subnet)
        for pool in self.pools:
            if network.network_address in pool.network:
                return pool, network
        raise NoOwningPool(subnet, [p.network for p in self.pools])


def _as_config(entry) -> NetworkConfig:
    if isinstance(entry, NetworkConfig):
        return entry
    if isinstance(entry, dict):
        return NetworkConfig(entry["cidr"], int(entry["host_subnet_length"]))
    cidr, host_bits = entry
    return NetworkConfig(cidr, int(host_bits))


def build_registry(networks: Iterable, directory=None) -> SubnetRegistry:
    """Create the registry and seed it from the subnet directory"""
    registry = SubnetRegistry(networks)
    if directory is not None:
        registry.reconcile(directory.list_subnets())
    return registry
