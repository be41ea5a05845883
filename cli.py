#!/usr/bin/env python3
"""Simple CLI for swapping tokens through the configured router"""

import argparse
import asyncio
import sys
from typing import Optional

from swapdesk.config import settings
from swapdesk.core.execution.submitter import ApprovalSender, SwapSender
from swapdesk.core.swap import (
    OperationKind,
    OperationState,
    SwapAction,
    SwapOrchestrator,
    Token,
    TransactionStateTracker,
    format_amount,
)
from swapdesk.logging_config import setup_logging
from swapdesk.providers import JsonRpcProvider


async def load_token(provider: JsonRpcProvider, address: str) -> Token:
    decimals = await provider.decimals_of(address)
    return Token(address=address, decimals=decimals)


async def resolve_account(provider: JsonRpcProvider, account: Optional[str]) -> str:
    if account:
        return account
    accounts = await provider.accounts()
    if not accounts:
        raise SystemExit("❌ Wallet exposes no accounts; pass --account")
    return accounts[0]


async def cli_balance(token_address: str, account: str):
    provider = JsonRpcProvider()
    try:
        token = await load_token(provider, token_address)
        balance = await provider.balance_of(token.address, account)
        print(f"Balance: {format_amount(balance, token.decimals)} ({balance} base units)")
    finally:
        await provider.close()


async def cli_allowance(token_address: str, owner: str, spender: Optional[str]):
    provider = JsonRpcProvider()
    spender = spender or settings.router_address
    try:
        token = await load_token(provider, token_address)
        allowance = await provider.allowance_of(token.address, owner, spender)
        print(f"Allowance for {spender}: {format_amount(allowance, token.decimals)}")
    finally:
        await provider.close()


def print_transition(label: str):
    def _print(previous: OperationState, current: OperationState) -> None:
        suffix = f" tx={current.tx_hash}" if current.tx_hash else ""
        if current.reason:
            suffix += f" reason={current.reason.value}"
        print(f"  [{label}] {previous.status.value} -> {current.status.value}{suffix}")
    return _print


async def cli_swap(from_address: str, to_address: str, amount: str, account: Optional[str], deadline: Optional[int]):
    provider = JsonRpcProvider()
    approvals = TransactionStateTracker(OperationKind.APPROVE, ApprovalSender(provider))
    swaps = TransactionStateTracker(OperationKind.SWAP, SwapSender(provider))
    approvals.subscribe(print_transition("approve"))
    swaps.subscribe(print_transition("swap"))

    orchestrator = None
    try:
        from_token = await load_token(provider, from_address)
        to_token = await load_token(provider, to_address)
        orchestrator = SwapOrchestrator(
            from_token,
            approvals,
            swaps,
            provider,
            account=await resolve_account(provider, account),
            quoter=provider,
        )
        orchestrator.select_to_token(to_token)
        if not orchestrator.set_amount_text(amount):
            print(f"❌ Invalid amount: {amount}")
            return 1

        await orchestrator.refresh()

        if orchestrator.current_action() == SwapAction.APPROVE:
            print("🔐 Approving router...")
            await orchestrator.request_approve().wait()
            await orchestrator.refresh_allowance()

        action = orchestrator.current_action()
        if action != SwapAction.SWAP:
            reason = orchestrator.blocking_reason()
            print(f"❌ Cannot swap: {reason.value if reason else action.value}")
            message = orchestrator.status_message()
            if message:
                print(f"   {message}")
            return 1

        quote = await orchestrator.quote_amount_out()
        if quote is not None:
            print(f"🔄 Swapping, expecting ~{format_amount(quote, to_token.decimals)} out...")
        await orchestrator.request_swap(deadline).wait()
        print(orchestrator.status_message() or "")
        return 0 if orchestrator.swap_tracker.state.succeeded else 1
    finally:
        if orchestrator is not None:
            await orchestrator.close()
        await provider.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Token swap CLI")
    parser.add_argument("--log-level", default=None, help="Override logging level")
    subparsers = parser.add_subparsers(dest="command")

    balance_parser = subparsers.add_parser("balance", help="Show a token balance")
    balance_parser.add_argument("token", help="Token address")
    balance_parser.add_argument("account", help="Account address")

    allowance_parser = subparsers.add_parser("allowance", help="Show the router allowance")
    allowance_parser.add_argument("token", help="Token address")
    allowance_parser.add_argument("owner", help="Owner address")
    allowance_parser.add_argument("--spender", help="Spender (default: configured router)")

    swap_parser = subparsers.add_parser("swap", help="Approve if needed, then swap")
    swap_parser.add_argument("from_token", help="Source token address")
    swap_parser.add_argument("to_token", help="Destination token address")
    swap_parser.add_argument("amount", help="Amount of the source token, e.g. 1.5")
    swap_parser.add_argument("--account", help="Wallet account (default: first eth_accounts entry)")
    swap_parser.add_argument("--deadline", type=int, help="Deadline in seconds from now")

    return parser


async def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.log_level)

    if not args.command:
        parser.print_help()
        return 0

    command = args.command.lower()

    if command == "balance":
        await cli_balance(args.token, args.account)
    elif command == "allowance":
        await cli_allowance(args.token, args.owner, args.spender)
    elif command == "swap":
        return await cli_swap(args.from_token, args.to_token, args.amount, args.account, args.deadline)
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
