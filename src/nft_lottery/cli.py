from __future__ import annotations

import argparse
import dataclasses
import logging
from datetime import datetime, timezone

import httpx
from eth_utils import from_wei, is_address

from .config import Settings
from .deployments import load_deployment
from .errors import LotteryError
from .executor import wall_clock
from .ledger import LotteryLedger
from .lifecycle import RoundLifecycleDriver
from .oracle import RoundOracle
from .prizes import is_claimable_by
from .rpc import RpcError
from .scheduler import PurchaseScheduler


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    # httpx logs request URLs at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def load_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env(deployments_override=args.deployments)
    if args.timeout is not None:
        settings = dataclasses.replace(settings, rpc_timeout_s=args.timeout)
    return settings


def open_ledger(settings: Settings, chain: str, signing: bool) -> LotteryLedger:
    deployment = load_deployment(settings.deployments_dir, chain)
    if signing:
        creds = settings.credentials_for(deployment.chain_id)
        rpc_url, private_key = creds.rpc_url, creds.private_key
    else:
        rpc_url, private_key = settings.rpc_url_for(deployment.chain_id), None
    return LotteryLedger.connect(
        deployment,
        rpc_url,
        private_key,
        timeout_s=settings.rpc_timeout_s,
        gas_limit_multiplier=settings.gas_limit_multiplier,
        receipt_timeout_s=settings.receipt_timeout_s,
    )


def fmt_ts(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def cmd_tick(args: argparse.Namespace) -> int:
    settings = load_settings(args)
    results = PurchaseScheduler(settings).tick()
    for r in results:
        line = f"{r.chain:<16} {r.outcome.value}"
        if r.round_id is not None:
            line += f" round={r.round_id}"
        if r.tx_hash:
            line += f" tx={r.tx_hash}"
        print(line)
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    settings = load_settings(args)
    if args.interval is not None:
        settings = dataclasses.replace(settings, tick_interval_s=args.interval)
    try:
        PurchaseScheduler(settings).run_forever()
    except KeyboardInterrupt:
        logging.getLogger("scheduler").info("Stopped.")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    if args.holder is not None and not is_address(args.holder):
        raise SystemExit(f"Not an address: {args.holder}")
    settings = load_settings(args)
    log = logging.getLogger("status")
    now = wall_clock()

    for chain in settings.chains:
        try:
            ledger = open_ledger(settings, chain, signing=False)
        except LotteryError as e:
            log.warning("[%s] %s", chain, e)
            continue
        try:
            print_status(ledger, chain, now, args.holder)
        except (LotteryError, RpcError, httpx.HTTPError) as e:
            log.warning("[%s] %s", chain, e)
        finally:
            ledger.close()
    return 0


def print_status(
    ledger: LotteryLedger, chain: str, now: int, holder: str | None = None
) -> None:
    deployment = ledger.deployment
    snapshot = RoundOracle(ledger).read()
    r = snapshot.round
    print("========================================")
    print(f"Chain          : {chain} ({deployment.chain_id})")
    print(f"Lottery        : {deployment.lottery}")
    if deployment.seaport_executor:
        print(f"Seaport exec   : {deployment.seaport_executor}")
    if deployment.uniswap_v3_executor:
        print(f"Uniswap exec   : {deployment.uniswap_v3_executor}")
    print(f"Owner          : {ledger.owner()}")
    print(f"Ticket price   : {from_wei(ledger.ticket_price(), 'ether')}")
    print("----------------------------------------")
    print(f"Round          : {snapshot.round_id} [{snapshot.phase(now).value}]")
    print(f"Start / End    : {fmt_ts(r.start)} / {fmt_ts(r.end)}")
    print(f"Window closes  : {fmt_ts(r.end + snapshot.purchase_window)}")
    print(f"Deposited      : {from_wei(r.deposited, 'ether')}")
    print(f"Purchase budget: {from_wei(r.purchase_budget, 'ether')}")
    print(f"Owner amount   : {from_wei(r.owner_amount, 'ether')}")
    total = ledger.prize_vault.round_prize_count(snapshot.round_id)
    print(f"Winners drawn  : {r.winners_drawn}/{total}")
    if holder is not None:
        print(f"Tickets held   : {ledger.tickets_of(snapshot.round_id, holder)}")


def _run_transition(args: argparse.Namespace, action: str) -> int:
    settings = load_settings(args)
    log = logging.getLogger("lifecycle")
    try:
        ledger = open_ledger(settings, args.chain, signing=True)
    except LotteryError as e:
        log.error("%s: %s", args.chain, e)
        return 1
    try:
        driver = RoundLifecycleDriver(ledger)
        if action == "finalize":
            receipt = driver.finalize_round(args.round)
        elif action == "draw":
            receipt = driver.draw_winners(args.round, args.batch)
        else:
            receipt = driver.start_next_round()
    except LotteryError as e:
        log.error("%s refused: %s", action, e)
        return 1
    except (RpcError, httpx.HTTPError) as e:
        log.error("%s: could not read %s: %s", action, args.chain, e)
        return 1
    finally:
        ledger.close()
    print(f"✅ {action} confirmed: {receipt.tx_hash} (block {receipt.block_number})")
    return 0


def cmd_finalize(args: argparse.Namespace) -> int:
    return _run_transition(args, "finalize")


def cmd_draw(args: argparse.Namespace) -> int:
    return _run_transition(args, "draw")


def cmd_start_next(args: argparse.Namespace) -> int:
    return _run_transition(args, "start-next")


def cmd_prizes(args: argparse.Namespace) -> int:
    if not is_address(args.owner):
        raise SystemExit(f"Not an address: {args.owner}")
    settings = load_settings(args)
    ledger = open_ledger(settings, args.chain, signing=False)
    try:
        vault = ledger.prize_vault
        if args.round is not None:
            prizes = vault.round_prizes(args.round)
        else:
            prizes = vault.all_prizes()
    finally:
        ledger.close()

    mine = [p for p in prizes if is_claimable_by(p, args.owner)]
    if not mine:
        print("No unclaimed prizes")
        return 0
    for p in mine:
        print(
            f"Prize #{p.index}: {p.kind.name} {p.asset_address} "
            f"tokenId={p.token_id} amount={p.amount} round={p.round_id}"
        )
    return 0


def cmd_allowlist(args: argparse.Namespace) -> int:
    if not is_address(args.asset):
        raise SystemExit(f"Not an address: {args.asset}")
    settings = load_settings(args)
    ledger = open_ledger(settings, args.chain, signing=False)
    try:
        collection = ledger.is_collection_allowed(args.asset)
        token = ledger.is_token_allowed(args.asset)
    finally:
        ledger.close()

    def _fmt(v: bool | None) -> str:
        return "no allowlist" if v is None else ("allowed" if v else "not allowed")

    print(f"Collection allowlist: {_fmt(collection)}")
    print(f"Token allowlist     : {_fmt(token)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="nft-lottery",
        description="Round lifecycle and automated prize purchases for the NFT lottery.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument(
        "--deployments",
        default=None,
        help="Space separated deployment names (else DEPLOYMENTS from env).",
    )
    p.add_argument("--timeout", type=float, default=None, help="RPC timeout seconds.")

    sub = p.add_subparsers(dest="cmd", required=True)

    t = sub.add_parser("tick", help="Run one scheduler pass over every chain.")
    t.set_defaults(func=cmd_tick)

    r = sub.add_parser("run", help="Run the scheduler until interrupted.")
    r.add_argument("--interval", type=float, default=None, help="Seconds between ticks.")
    r.set_defaults(func=cmd_run)

    s = sub.add_parser("status", help="Show the current round on every chain.")
    s.add_argument(
        "--holder", default=None, help="Also show this address's tickets in the round."
    )
    s.set_defaults(func=cmd_status)

    f = sub.add_parser("finalize", help="Finalize a fully drawn round.")
    f.add_argument("--chain", required=True, help="Deployment name.")
    f.add_argument("--round", required=True, type=int, help="Round id.")
    f.set_defaults(func=cmd_finalize)

    d = sub.add_parser("draw", help="Draw winners for a closed round.")
    d.add_argument("--chain", required=True, help="Deployment name.")
    d.add_argument("--round", required=True, type=int, help="Round id.")
    d.add_argument(
        "--batch", type=int, default=0, help="Slots to draw (0 = all remaining)."
    )
    d.set_defaults(func=cmd_draw)

    n = sub.add_parser("start-next", help="Open the next round.")
    n.add_argument("--chain", required=True, help="Deployment name.")
    n.set_defaults(func=cmd_start_next)

    z = sub.add_parser("prizes", help="List unclaimed prizes owned by an address.")
    z.add_argument("--chain", required=True, help="Deployment name.")
    z.add_argument("--owner", required=True, help="Winner address.")
    z.add_argument("--round", type=int, default=None, help="Limit to one round.")
    z.set_defaults(func=cmd_prizes)

    a = sub.add_parser("allowlist", help="Check an asset against the deployment allowlists.")
    a.add_argument("--chain", required=True, help="Deployment name.")
    a.add_argument("--asset", required=True, help="Collection or token address.")
    a.set_defaults(func=cmd_allowlist)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)
    raise SystemExit(args.func(args))
