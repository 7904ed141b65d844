"""
Subnet directory - persistent node -> subnet records
"""

import logging
from typing import List, Optional

import sqlalchemy
from sqlalchemy.orm import sessionmaker

from models import Base, HostSubnet

logger = logging.getLogger(__name__)


class SubnetDirectory:
    def __init__(self, url: str):
        self.url = url
        self.engine = sqlalchemy.create_engine(url)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)

    def session(self):
        return self.Session()

    def list_subnets(self) -> List[HostSubnet]:
        """All current assignments, used to seed the allocator at startup"""
        with self.session() as session:
            return session.query(HostSubnet).order_by(HostSubnet.host).all()

    def get(self, host: str) -> Optional[HostSubnet]:
        with self.session() as session:
            return session.get(HostSubnet, host)

    def assign(self, host: str, subnet: str, host_ip: Optional[str] = None) -> HostSubnet:
        """Record a subnet for host; raises IntegrityError on duplicates"""
        with self.session() as session:
            record = HostSubnet(host=host, subnet=subnet, host_ip=host_ip)
            session.add(record)
            session.commit()
            logger.debug("Recorded %s -> %s", host, subnet)
            return record

    def remove(self, host: str) -> Optional[HostSubnet]:
        with self.session() as session:
            record = session.get(HostSubnet, host)
            if record is None:
                return None
            session.delete(record)
            session.commit()
            return record
