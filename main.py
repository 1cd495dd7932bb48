#!/usr/bin/env python3
"""Entry point for the gasless relay client.

Reads configuration from the environment, signs one forward request for the
recipient's ``mint()`` call and submits it to the relay.
"""

import argparse
import asyncio
import json
import logging
import os
import sys

# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from gasless_relay.exceptions import ConfigurationError, GaslessRelayError, IntegrityFault, RelayError
from gasless_relay.gasless_sender import GaslessSender
from gasless_relay.relay_submitter import build_envelope


async def main() -> None:
    """Main entry point for the gasless relay client.

    Raises:
        SystemExit: On configuration, signing or relay errors
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Gasless Relay Client - sign an EIP-712 forward request and relay it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  CHAIN_RPC_URL              - RPC endpoint of the chain
  DOMAIN_NAME                - Forwarder EIP-712 domain name
  DOMAIN_VERSION             - Forwarder EIP-712 domain version
  REQUEST_TYPE               - Primary type registered with the forwarder
  REQUEST_TYPE_SUFFIX        - Raw type suffix string (default: empty)
  FORWARDER_ADDRESS          - Forwarder contract address
  RECIPIENT_CONTRACT_ADDRESS - Recipient (GaslessNft) contract address
  RELAYER_URL                - Relay server JSON-RPC endpoint
  PRIVATE_KEY                - Signing key (hex)
  GAS_LIMIT                  - Gas budget (default: 700000)
  VALID_UNTIL                - never | +<seconds> | <unix time> (default: never)
  LOG_LEVEL                  - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    parser.add_argument(
        "--nonce",
        type=int,
        default=None,
        help="Use this forwarder nonce instead of reading it from the chain"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Sign and verify the request, print the relay envelope, do not submit"
    )
    parser.add_argument(
        "--no-wait",
        action="store_true",
        default=False,
        help="Do not wait for the relayed transaction to be mined"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)
    logger.info("=== Gasless Relay Client Starting ===")

    try:
        sender: GaslessSender = GaslessSender.from_env()

        if args.dry_run:
            signed = sender.prepare(nonce=args.nonce)
            print(json.dumps(build_envelope(signed).to_dict(), indent=2))
            return

        if args.no_wait:
            tx_hash = await sender.send(nonce=args.nonce)
            logger.info(f"txHash : {tx_hash}")
        else:
            receipt = await sender.send_and_wait(nonce=args.nonce)
            logger.info(f"tx mined : {receipt['transactionHash'].hex()} in block {receipt['blockNumber']}")

    except ConfigurationError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables (see --help)")
        sys.exit(1)

    except IntegrityFault as e:
        logger.error(f"Signature self-check failed, request not submitted: {e}")
        sys.exit(1)

    except RelayError as e:
        logger.error(f"Relay Error: {e.message}")
        if e.response is not None:
            logger.error(f"Relay response: {e.response}")
        sys.exit(1)

    except GaslessRelayError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, shutting down...")
        sys.exit(1)

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
