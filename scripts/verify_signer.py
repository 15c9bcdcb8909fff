#!/usr/bin/env python3
"""Check the configured signer end to end.

Builds the signer from environment variables (see custody_signers.config),
prints its address, probes the backend and optionally signs a test message.

Usage:
    SIGNER_BACKEND=vault VAULT_ADDR=... python scripts/verify_signer.py
    python scripts/verify_signer.py --sign "hello"
"""

import argparse
import asyncio
import logging
import sys

# Colors for output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
RESET = "\033[0m"
CHECK = "✓"
CROSS = "✗"


def print_status(name: str, success: bool, message: str = ""):
    """Print status with color."""
    if success:
        print(f"  {GREEN}{CHECK}{RESET} {name}" + (f" - {message}" if message else ""))
    else:
        print(f"  {RED}{CROSS}{RESET} {name}" + (f" - {message}" if message else ""))


async def main(sign_text: str | None) -> int:
    from custody_signers.config import get_settings
    from custody_signers.signing import SignerError, create_signer, get_signer_info

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    print("=" * 60)
    print("     SIGNER VERIFICATION")
    print("=" * 60)

    try:
        signer = await create_signer(settings)
    except SignerError as e:
        print_status("Create signer", False, str(e))
        return 1

    info = await get_signer_info(signer)
    print_status("Create signer", True, f"{info['class']} ({info['type']})")
    print_status("Address", True, info["address"])
    print_status("Backend available", info["healthy"])

    if sign_text is not None:
        try:
            records = await signer.sign_messages([sign_text.encode("utf-8")])
            signature = records[0][signer.address]
            print_status("Sign message", True, signature.hex())
        except SignerError as e:
            print_status("Sign message", False, str(e))
            return 1

    print()
    if info["healthy"]:
        print(f"  {GREEN}Signer ready{RESET}")
        return 0
    print(f"  {YELLOW}Signer configured but backend unavailable{RESET}")
    return 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--sign", metavar="TEXT", help="sign TEXT as a test message")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.sign)))
