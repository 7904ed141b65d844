"""
Subnet allocator errors
PoolExhausted is the only soft error: the registry falls back to the next pool.
"""


class SubnetAllocatorError(Exception):
    """Base class for every allocator error"""


class InvalidRange(SubnetAllocatorError, ValueError):
    """Parent range text could not be parsed"""

    def __init__(self, text):
        super().__init__(f"failed to parse network address: {text!r}")
        self.text = text


class InvalidSubnetText(SubnetAllocatorError, ValueError):
    """Subnet text could not be parsed"""

    def __init__(self, text, reason=None):
        message = f"error parsing subnet {text!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.text = text


class InvalidHostBits(SubnetAllocatorError, ValueError):
    def __init__(self, host_bits=0):
        super().__init__(
            f"host capacity must be a positive integer, got {host_bits!r}"
        )
        self.host_bits = host_bits


class HostBitsExceedCapacity(SubnetAllocatorError, ValueError):
    def __init__(self, host_bits, network):
        super().__init__(
            f"host bits ({host_bits}) leave no room for subnets in {network}"
        )
        self.host_bits = host_bits
        self.network = network


class OutOfRange(SubnetAllocatorError):
    def __init__(self, subnet, network):
        super().__init__(f"subnet {subnet} doesn't belong to network {network}")
        self.subnet = subnet
        self.network = network


class NotAllocated(SubnetAllocatorError):
    def __init__(self, subnet):
        super().__init__(f"subnet {subnet} is already available")
        self.subnet = subnet


class PoolExhausted(SubnetAllocatorError):
    def __init__(self, network):
        super().__init__(f"no subnets available in {network}")
        self.network = network


class NoOwningPool(SubnetAllocatorError):
    def __init__(self, subnet, networks):
        listed = ", ".join(str(n) for n in networks) or "none"
        super().__init__(
            f"subnet {subnet} not found in the cluster networks: {listed}"
        )
        self.subnet = subnet


class AllocationFailed(SubnetAllocatorError):
    """Every pool was exhausted or failed for this requester"""

    def __init__(self, requester, cause=None):
        message = f"error allocating network for node {requester}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.requester = requester
        self.cause = cause


class ConfigError(SubnetAllocatorError, ValueError):
    """Config file is missing required settings"""
