"""
Domain Scheduler

Splits a batch of URLs into waves so that no two requests in flight at the
same time target the same host.
"""

import logging
from typing import Dict, List, Optional, Sequence

from .data_models import Wave
from .url_normalizer import get_host

logger = logging.getLogger(__name__)


class DomainScheduler:
    """Greedy first-fit placement of URLs into host-distinct waves"""

    def __init__(self, queued_testing: bool = True):
        """
        Initialize the scheduler.

        Args:
            queued_testing: When False every URL goes into a single wave
        """
        self.queued_testing = queued_testing

    def schedule(self, urls: Sequence[str]) -> List[Wave]:
        """
        Partition URLs into waves.

        Each URL lands in the earliest wave that does not already hold its
        host, so a host's URLs keep their input order across waves.

        Args:
            urls: URLs in input order

        Returns:
            List of waves, each a list of (host, url) pairs
        """
        if not urls:
            return []

        if not self.queued_testing:
            return [[(get_host(url), url) for url in urls]]

        waves: List[Wave] = []
        wave_hosts: List[set] = []
        # Index of the first wave that might still accept a host
        next_free: Dict[Optional[str], int] = {}

        for url in urls:
            host = get_host(url)
            index = next_free.get(host, 0)
            while index < len(waves) and host in wave_hosts[index]:
                index += 1
            if index == len(waves):
                waves.append([])
                wave_hosts.append(set())
            waves[index].append((host, url))
            wave_hosts[index].add(host)
            next_free[host] = index + 1

        logger.debug(f"Scheduled {len(urls)} URLs into {len(waves)} waves")
        return waves


__all__ = ["DomainScheduler"]
