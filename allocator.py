"""
Subnet Allocator - fixed-size subnets carved out of one cluster network
Round-robin search with byte-friendly ordering of subnet numbers
"""

import ipaddress
import logging
import threading
from typing import NamedTuple, Set

from errors import (
    HostBitsExceedCapacity,
    InvalidHostBits,
    NotAllocated,
    OutOfRange,
    PoolExhausted,
)
from netcodec import as_network, ip_to_uint32, parse_range, uint32_to_ip

logger = logging.getLogger(__name__)


class Rotation(NamedTuple):
    left_shift: int
    left_mask: int
    right_shift: int
    right_mask: int


IDENTITY = Rotation(0, 0xFFFFFFFF, 0, 0)


def rotation_for(prefixlen: int, host_bits: int) -> Rotation:
    """
    Bit rotation applied to subnet numbers.

    In the simple case the subnet part of an address is just the subnet number
    shifted host_bits to the left. When host_bits isn't a multiple of 8 and the
    subnet number runs into the octet holding the top host bits, subnet and
    host parts are hard to tell apart by eye (with 10.1.0.0/16 and host_bits=6,
    10.1.0.50 and 10.1.0.70 are on different networks). So the subnet number
    is rotated to hand out the subnets with all 0s in the shared octet first:
    10.1.0.0/26, 10.1.1.0/26 ... 10.1.255.0/26, then 10.1.0.64/26 and so on.
    """
    subnet_bits = 32 - prefixlen - host_bits
    if host_bits % 8 != 0 and (host_bits - 1) // 8 != (host_bits + subnet_bits - 1) // 8:
        left_shift = 8 - (host_bits % 8)
        return Rotation(
            left_shift=left_shift,
            left_mask=(1 << (32 - prefixlen)) - 1,
            right_shift=subnet_bits - left_shift,
            right_mask=((1 << left_shift) - 1) << host_bits,
        )
    return IDENTITY


def subnet_offset(n: int, host_bits: int, rotation: Rotation) -> int:
    """Offset of subnet number n from the start of the cluster network"""
    shifted = n << host_bits
    return ((shifted << rotation.left_shift) & rotation.left_mask) | (
        (shifted >> rotation.right_shift) & rotation.right_mask
    )


class SubnetAllocator:
    """Hands out subnets of one cluster network, one per caller"""

    def __init__(self, network: str, host_bits: int):
        self.network = parse_range(network)
        if isinstance(host_bits, bool) or not isinstance(host_bits, int) or host_bits < 1:
            raise InvalidHostBits(host_bits)
        if host_bits > 32 - self.network.prefixlen:
            raise HostBitsExceedCapacity(host_bits, self.network)

        self.host_bits = host_bits
        self.subnet_bits = 32 - self.network.prefixlen - host_bits
        self.rotation = rotation_for(self.network.prefixlen, host_bits)
        self._base = ip_to_uint32(self.network.network_address)

        self._allocated: Set[str] = set()
        self._next = 0
        self._lock = threading.Lock()

    def __repr__(self):
        return f"<SubnetAllocator {self.network} /{self.subnet_prefixlen}>"

    @property
    def num_subnets(self) -> int:
        return 1 << self.subnet_bits

    @property
    def subnet_prefixlen(self) -> int:
        return self.network.prefixlen + self.subnet_bits

    @property
    def allocated(self) -> Set[str]:
        with self._lock:
            return set(self._allocated)

    @property
    def in_use(self) -> int:
        with self._lock:
            return len(self._allocated)

    def contains(self, subnet) -> bool:
        """Check if a subnet's address lies within this cluster network"""
        return as_network(subnet).network_address in self.network

    def offset(self, n: int) -> int:
        return subnet_offset(n, self.host_bits, self.rotation)

    def subnet_at(self, n: int) -> ipaddress.IPv4Network:
        """Subnet for subnet number n"""
        address = uint32_to_ip(self._base | self.offset(n))
        return ipaddress.IPv4Network(f"{address}/{self.subnet_prefixlen}")

    def allocate(self) -> ipaddress.IPv4Network:
        """Allocate the next free subnet, starting from where the last call stopped"""
        num_subnets = self.num_subnets
        with self._lock:
            for i in range(num_subnets):
                n = (i + self._next) % num_subnets
                candidate = self.subnet_at(n)
                key = str(candidate)
                if key not in self._allocated:
                    self._allocated.add(key)
                    self._next = (n + 1) % num_subnets
                    return candidate

            self._next = 0
            raise PoolExhausted(self.network)

    def mark_allocated(self, subnet) -> None:
        """Record a subnet that is already in use; marking twice is fine"""
        subnet = as_network(subnet)
        with self._lock:
            if subnet.network_address not in self.network:
                raise OutOfRange(subnet, self.network)
            key = str(subnet)
            if key in self._allocated:
                logger.debug("%s already marked allocated in %s", key, self.network)
            self._allocated.add(key)

    def release(self, subnet) -> None:
        subnet = as_network(subnet)
        with self._lock:
            if subnet.network_address not in self.network:
                raise OutOfRange(subnet, self.network)
            key = str(subnet)
            if key not in self._allocated:
                raise NotAllocated(subnet)
            self._allocated.remove(key)
