#!/usr/bin/env python3
"""
Command-line front end for a persisted cart.

Usage:
    rocketcart show
    rocketcart add 3
    rocketcart remove 3
    rocketcart set 3 2 --json

Configuration comes from the environment (and a local .env file), see
rocketcart.config. The cart is printed after every command; the exit
status is 1 when the operation was rejected.
"""
import argparse
import asyncio
import json
import sys
from typing import Optional

from dotenv import load_dotenv

from rocketcart.cart.models import Cart
from rocketcart.cart.service import CartSession, open_session
from rocketcart.config import get_settings
from rocketcart.errors import CartError, ConfigurationError
from rocketcart.i18n import get_text


def build_parser() -> argparse.ArgumentParser:
    output = argparse.ArgumentParser(add_help=False)
    output.add_argument("--json", action="store_true", help="Print the cart as JSON")

    parser = argparse.ArgumentParser(prog="rocketcart", description="Inspect and edit the shopping cart")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("show", parents=[output], help="Print the cart")

    add = commands.add_parser("add", parents=[output], help="Add one unit of a product")
    add.add_argument("product_id", type=int)

    remove = commands.add_parser("remove", parents=[output], help="Remove a product from the cart")
    remove.add_argument("product_id", type=int)

    set_amount = commands.add_parser("set", parents=[output], help="Set the quantity of a product in the cart")
    set_amount.add_argument("product_id", type=int)
    set_amount.add_argument("amount", type=int)

    return parser


def format_cart(cart: Cart, lang: str) -> str:
    """Human-readable cart listing."""
    if not cart:
        return get_text("cart.empty", lang)

    lines = [
        get_text("cart.line", lang, id=item.id, title=item.metadata.get("title", ""), amount=item.amount)
        for item in cart
    ]
    total = sum(item.amount for item in cart)
    lines.append(get_text("cart.total_units", lang, count=total))
    return "\n".join(lines)


async def run_command(session: CartSession, args: argparse.Namespace) -> Optional[CartError]:
    if args.command == "add":
        return await session.add_product(args.product_id)
    if args.command == "remove":
        return session.remove_product(args.product_id)
    if args.command == "set":
        return await session.update_product_amount(args.product_id, args.amount)
    return None


async def _main(args: argparse.Namespace) -> int:
    settings = get_settings()
    async with open_session(settings) as session:
        error = await run_command(session, args)

        if args.json:
            print(json.dumps([item.to_dict() for item in session.cart], ensure_ascii=False, indent=2))
        else:
            print(format_cart(session.cart, settings.language))

    if error is not None:
        # Silent rejections carry no message; show the kind instead
        print(error.message or error.kind.value, file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(_main(args))
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
