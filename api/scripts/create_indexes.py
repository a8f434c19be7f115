#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Create the MongoDB indexes used by the grant lifecycle services.

Connection settings come from MONGODB_URI / MONGODB_DATABASE.
"""

import sys
import os
import logging

# Allow running from a source checkout without installing the package
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.mongodb import get_mongodb_service, close_mongodb_connection

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main() -> int:
    """Create MongoDB indexes, returning the process exit code."""
    try:
        mongodb_service = get_mongodb_service()
        logger.info(f"Creating indexes on database {mongodb_service.database_name}")

        mongodb_service.create_indexes()

        logger.info("MongoDB indexes created successfully")
        return 0

    except Exception as e:
        logger.error(f"Failed to create indexes: {e}", exc_info=True)
        return 1
    finally:
        close_mongodb_connection()


if __name__ == "__main__":
    sys.exit(main())
