# proxmox_utils.py
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from proxmoxer import ProxmoxAPI

from config import *
from logger import log


class InfrastructureError(RuntimeError):
    """Authentication or enumeration failure; aborts the whole run."""


class PowerState(Enum):
    RUNNING = "running"
    DEALLOCATED = "deallocated"
    PAUSED = "paused"
    SUSPENDED = "suspended"
    UNKNOWN = "unknown"

    @classmethod
    def from_code(cls, code):
        return _POWER_STATE_CODES.get((code or "").strip().lower(), cls.UNKNOWN)


# Proxmox status codes -> power state. A stopped guest holds no host resources.
_POWER_STATE_CODES = {
    "running": PowerState.RUNNING,
    "stopped": PowerState.DEALLOCATED,
    "deallocated": PowerState.DEALLOCATED,
    "paused": PowerState.PAUSED,
    "suspended": PowerState.SUSPENDED,
    "prelaunch": PowerState.PAUSED,
}


@dataclass
class ResourceGroup:
    name: str
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class VirtualMachine:
    vmid: int
    name: str
    node: str
    resource_type: str  # "qemu" or "lxc"
    resource_group: Optional[str] = None  # pool id
    tags: Optional[Dict[str, str]] = None  # None when the config could not be read
    observed_power_state: PowerState = PowerState.UNKNOWN


# -----------------------
# Tags (key=value lines in guest notes / pool comments)
# -----------------------

def parse_tags(text):
    """Return {key: value} for every `key=value` line in a notes field."""
    tags = {}
    for line in (text or "").splitlines():
        key, sep, value = line.partition("=")
        key = key.strip()
        if sep and key and " " not in key:
            tags[key] = value.strip()
    return tags


def render_tags(tags, text=""):
    """Rewrite `text` so it carries exactly `tags`, keeping non-tag lines."""
    lines = [line for line in (text or "").splitlines() if not parse_tags(line)]
    lines.extend(f"{key}={value}" for key, value in tags.items())
    return "\n".join(lines)


# -----------------------
# Connection
# -----------------------

def connect_proxmox(retries=CONNECT_RETRIES, delay=CONNECT_DELAY):
    """Connect to Proxmox API using token."""
    for attempt in range(1, retries + 1):
        try:
            proxmox = ProxmoxAPI(
                PROXMOX_HOST,
                user=PROXMOX_USER,
                token_name=PROXMOX_TOKEN_NAME,
                token_value=PROXMOX_TOKEN_VALUE,
                verify_ssl=PROXMOX_VERIFY_SSL
            )
            proxmox.version.get()  # token is only checked on the first request
            return proxmox
        except Exception as e:
            log(f"[!] Failed to connect to Proxmox (attempt {attempt}/{retries}): {e}", level=logging.WARNING)
            if attempt < retries:
                time.sleep(delay)
    log("[✗] Giving up after repeated Proxmox connection failures.", level=logging.ERROR)
    raise InfrastructureError(f"Cannot connect to Proxmox at {PROXMOX_HOST!r}")


def _guest(proxmox, vm):
    return getattr(proxmox.nodes(vm.node), vm.resource_type)(vm.vmid)


# -----------------------
# Enumeration
# -----------------------

def list_resource_groups(proxmox):
    """Return every pool with the tags found in its comment."""
    try:
        pools = proxmox.pools.get()
    except Exception as e:
        raise InfrastructureError(f"Failed to list Proxmox pools: {e}") from e
    return [ResourceGroup(name=p["poolid"], tags=parse_tags(p.get("comment"))) for p in pools]


def list_vms(proxmox) -> List[VirtualMachine]:
    """Return every managed guest (templates excluded), with tags from its notes."""
    try:
        resources = proxmox.cluster.resources.get(type="vm")
    except Exception as e:
        raise InfrastructureError(f"Failed to fetch VM list from Proxmox: {e}") from e

    vms = []
    for res in resources:
        if res.get("type") not in GUEST_TYPES or res.get("template"):
            continue
        if PROXMOX_NODE and res.get("node") != PROXMOX_NODE:
            continue
        vm = VirtualMachine(
            vmid=int(res["vmid"]),
            name=res.get("name") or str(res["vmid"]),
            node=res["node"],
            resource_type=res["type"],
            resource_group=res.get("pool") or None,
            observed_power_state=PowerState.from_code(res.get("status")),
        )
        try:
            vm.tags = parse_tags(_guest(proxmox, vm).config.get().get("description"))
        except Exception as e:
            log(f"[!] Could not read notes of {vm.name} ({vm.vmid}): {e}", level=logging.WARNING)
        vms.append(vm)
    return vms


# -----------------------
# Status / actions
# -----------------------

def get_power_state(proxmox, vm):
    """Query the live power state of a guest."""
    status = _guest(proxmox, vm).status.current.get()
    return PowerState.from_code(status.get("status"))


def start_vm(proxmox, vm):
    """Request a start; returns the task id without waiting for it."""
    return _guest(proxmox, vm).status.start.post()


def stop_vm(proxmox, vm, force=True):
    """Request a hard stop; `force` aborts shutdown tasks already running."""
    params = {"overrule-shutdown": 1} if force else {}
    return _guest(proxmox, vm).status.stop.post(**params)


def is_locked(proxmox, vm):
    """True if the guest has an active lock or the protection flag set."""
    cfg = _guest(proxmox, vm).config.get()
    return bool(cfg.get("lock")) or str(cfg.get("protection", 0)) == "1"


def set_tags(proxmox, vm, tags):
    """Replace the tag lines of a guest's notes, keeping any other text."""
    guest = _guest(proxmox, vm)
    description = render_tags(tags, guest.config.get().get("description"))
    if vm.resource_type == "lxc":
        guest.config.put(description=description)
    else:
        guest.config.post(description=description)
    vm.tags = dict(tags)
