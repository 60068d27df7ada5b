"""
Request acceleration for a set of partitions.
File: examples/request_partitions.py

Prerequisites:
1. Start a manager (or the stub): python tools/stub_manager.py 1027
2. Run this demo: python examples/request_partitions.py
"""

import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from acclink import (
    AccLinkException,
    Channel,
    MsgType,
    add_data_block,
    build_data_descriptor,
    build_request,
    get_config,
)

logger = logging.getLogger(__name__)


def main():
    config = get_config()
    config.logging.apply()
    logging.basicConfig(level=logging.INFO, format=config.logging.format)

    partitions = [0, 1, 2]

    try:
        with Channel.from_config(config.channel) as channel:
            logger.info(f"Requesting partitions {partitions}")
            reply = channel.exchange(build_request(os.getpid(), partitions))
            logger.info(f"Manager replied {reply.type.name} for {reply.acc_id}")

            if reply.type != MsgType.ACCGRANT:
                logger.info("Request not granted; running without the accelerator")
                return 1

            descriptor = build_data_descriptor(reply.acc_id)
            for pid in partitions:
                descriptor = add_data_block(
                    descriptor, pid, width=8, size=4096, offset=pid * 4096,
                    path=f"/tmp/acclink/partition-{pid}.bin",
                )
            reply = channel.exchange(descriptor)
            logger.info(f"Manager replied {reply.type.name} to the data description")
    except AccLinkException as e:
        logger.error(f"Accelerator channel failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
