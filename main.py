# main.py
import argparse
import logging
import sys
import time

import schedule

from autoshutdown_manager import RunContext, run_autoshutdown
from config import SIMULATE
from logger import log
from proxmox_utils import connect_proxmox


def _format_duration(delta):
    total = int(delta.total_seconds())
    return f"{total // 3600:02d}:{total % 3600 // 60:02d}:{total % 60:02d}"


def run_once(simulate=False):
    """One complete pass; the duration trailer is logged even on fatal errors."""
    ctx = RunContext.begin(simulate=simulate)
    log(f"🚀 Auto-shutdown run started{' (simulate)' if simulate else ''}")
    try:
        proxmox = connect_proxmox()
        return run_autoshutdown(proxmox, ctx)
    finally:
        log(f"[✓] Auto-shutdown run finished (duration {_format_duration(ctx.elapsed())})")


def _run_safely(simulate):
    try:
        run_once(simulate)
    except Exception as e:
        log(f"[!] Run aborted: {e}", level=logging.ERROR)


def build_parser():
    parser = argparse.ArgumentParser(description="Start and stop Proxmox guests according to their shutdown schedule tag.")
    parser.add_argument("--simulate", action="store_true", default=SIMULATE,
                        help="log the actions that would be taken without starting or stopping anything")
    parser.add_argument("--every", type=int, metavar="MINUTES",
                        help="keep running and reconcile every MINUTES instead of once; "
                             "fatal errors are logged and the loop continues, so the exit status stays 0")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    if not args.every:
        try:
            run_once(args.simulate)
        except Exception as e:
            log(f"[!] Run aborted: {e}", level=logging.ERROR)
            return 1
        return 0

    log(f"🚀 Auto-shutdown scheduler active, reconciling every {args.every} minutes")
    try:
        schedule.every(args.every).minutes.do(_run_safely, args.simulate)
        schedule.run_all()
        while True:
            try:
                schedule.run_pending()
            except Exception as e:
                log(f"[!] Scheduler runtime error: {e}", level=logging.ERROR)
            time.sleep(10)
    except KeyboardInterrupt:
        log("[🛑] Script manually stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
