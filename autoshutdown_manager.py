import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from config import *
from logger import log
from proxmox_utils import (
    PowerState,
    get_power_state,
    list_resource_groups,
    list_vms,
    start_vm,
    stop_vm,
)
from shutdown_schedule import MatchResult, match_schedule


class DesiredState(Enum):
    STARTED = "Started"
    STOPPED_DEALLOCATED = "StoppedDeallocated"


class Action(Enum):
    START = "start"
    STOP = "stop"
    NOOP = "noop"
    SKIP = "skip"
    FAILED = "failed"


# Observed state that already satisfies each desired state
_SATISFIED_BY = {
    DesiredState.STARTED: PowerState.RUNNING,
    DesiredState.STOPPED_DEALLOCATED: PowerState.DEALLOCATED,
}


@dataclass
class RunContext:
    start_time: datetime
    simulate: bool = False

    @classmethod
    def begin(cls, simulate=False):
        return cls(start_time=datetime.now(timezone.utc), simulate=simulate)

    def elapsed(self):
        return datetime.now(timezone.utc) - self.start_time


@dataclass
class Decision:
    vm_name: str
    action: Action
    desired_state: Optional[DesiredState] = None
    schedule_source: Optional[str] = None
    match: Optional[MatchResult] = None
    dispatched: bool = False


# -----------------------
# Schedule resolution
# -----------------------

def resolve_schedule(candidates: Iterable[Tuple[str, Optional[Dict[str, str]]]], tag_name=SCHEDULE_TAG_NAME):
    """Return (source, schedule) from the first candidate carrying `tag_name`.

    Candidates are (source label, tags) pairs in priority order; tags may be None.
    """
    for source, tags in candidates:
        if tags and tag_name in tags:
            return source, tags[tag_name]
    return None


def desired_state_for(schedule, now):
    """Any matching entry means the guest should be stopped."""
    match = match_schedule(schedule, now)
    if match.matched:
        return DesiredState.STOPPED_DEALLOCATED, match
    return DesiredState.STARTED, match


# -----------------------
# Reconciliation
# -----------------------

def reconcile(proxmox, vm, pool, ctx, now=None):
    """Bring one guest to the power state its schedule asks for."""
    now = now or datetime.now(timezone.utc)

    if vm.tags is None:
        log(f"[!] [{vm.name}]: Notes unavailable, skipping this VM.", level=logging.WARNING)
        return Decision(vm.name, Action.FAILED)

    candidates = [(f"VM '{vm.name}'", vm.tags)]
    if pool is not None:
        candidates.append((f"pool '{pool.name}'", pool.tags))
    resolved = resolve_schedule(candidates)
    if resolved is None:
        log(f"[Info] [{vm.name}]: No direct or inherited schedule tag found, skipping this VM.")
        return Decision(vm.name, Action.SKIP)

    source, schedule = resolved
    log(f"[Info] [{vm.name}]: Found schedule tag on {source} with value: {schedule}")

    desired, match = desired_state_for(schedule, now)
    if match.matched:
        log(f"[Info] [{vm.name}]: Current time {now:%Y-%m-%d %H:%M:%S} UTC falls within "
            f"scheduled shutdown range '{match.entry}'")
    else:
        log(f"[Info] [{vm.name}]: Current time {now:%Y-%m-%d %H:%M:%S} UTC falls outside "
            f"of all scheduled shutdown ranges")
    decision = Decision(vm.name, Action.NOOP, desired, source, match)

    try:
        state = get_power_state(proxmox, vm)
    except Exception as e:
        log(f"[!] [{vm.name}]: Failed to query power state: {e}", level=logging.ERROR)
        decision.action = Action.FAILED
        return decision
    vm.observed_power_state = state

    if state is _SATISFIED_BY[desired]:
        log(f"[✓] [{vm.name}]: Current power state [{state.value}] is correct.")
        return decision

    decision.action = Action.START if desired is DesiredState.STARTED else Action.STOP
    verb = "Starting" if decision.action is Action.START else "Stopping (deallocate, forced)"
    if ctx.simulate:
        log(f"[SIM] [{vm.name}]: {verb} VM from state [{state.value}], not executed in simulation mode")
        return decision

    try:
        log(f"[{'+' if decision.action is Action.START else '-'}] [{vm.name}]: {verb} VM from state [{state.value}]")
        if decision.action is Action.START:
            start_vm(proxmox, vm)
        else:
            stop_vm(proxmox, vm, force=True)
        decision.dispatched = True
    except Exception as e:
        log(f"[!] [{vm.name}]: {verb} failed: {e}", level=logging.ERROR)
        decision.action = Action.FAILED
    return decision


def run_autoshutdown(proxmox, ctx, now=None):
    """Reconcile every managed guest, one at a time, in name order."""
    now = now or datetime.now(timezone.utc)
    if ctx.simulate:
        log("[SIM] Running in simulate mode. No power actions will be taken.")
    log(f"[Info] Current UTC time [{now:%Y-%m-%d %H:%M:%S}]")

    vms = list_vms(proxmox)
    pools = {group.name: group for group in list_resource_groups(proxmox)}
    tagged = [name for name, group in pools.items() if SCHEDULE_TAG_NAME in group.tags]
    log(f"[Info] Found {len(vms)} VMs, {len(pools)} pools ({len(tagged)} tagged): {tagged}")

    decisions = []
    for vm in sorted(vms, key=lambda v: (v.name.lower(), v.vmid)):
        decisions.append(reconcile(proxmox, vm, pools.get(vm.resource_group), ctx, now))

    counts = {}
    for d in decisions:
        counts[d.action.value] = counts.get(d.action.value, 0) + 1
    log(f"[✓] Reconciled {len(decisions)} VMs: {counts}")
    return decisions
