"""
SQLAlchemy ORM Models for the subnet directory
Node name is the unique identifier
"""

import ipaddress

from sqlalchemy import Column, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class HostSubnet(Base):
    """Subnet assigned to one cluster node - e.g., node-1 -> 10.128.2.0/23"""

    __tablename__ = "host_subnets"

    host = Column(String(253), primary_key=True)
    host_ip = Column(String(15), nullable=True)
    subnet = Column(String(18), nullable=False, unique=True)

    def __repr__(self):
        return f"<HostSubnet {self.host}: {self.subnet}>"

    @property
    def network(self):
        return ipaddress.IPv4Network(self.subnet, strict=False)
