# config.py
import os

# Proxmox
PROXMOX_HOST = os.getenv("PROXMOX_HOST", "")
PROXMOX_USER = os.getenv("PROXMOX_USER", "")
PROXMOX_TOKEN_NAME = os.getenv("PROXMOX_TOKEN_NAME", "autoshutdown")
PROXMOX_TOKEN_VALUE = os.getenv("PROXMOX_TOKEN_VALUE", "")
PROXMOX_NODE = os.getenv("PROXMOX_NODE", "")  # empty = every node in the cluster
PROXMOX_VERIFY_SSL = os.getenv("PROXMOX_VERIFY_SSL", "0") == "1"
CONNECT_RETRIES = int(os.getenv("CONNECT_RETRIES", 3))
CONNECT_DELAY = int(os.getenv("CONNECT_DELAY", 5))

# --- Guests to manage ---
GUEST_TYPES = tuple(t.strip() for t in os.getenv("GUEST_TYPES", "qemu,lxc").split(",") if t.strip())

# --- Schedule ---
# Name of the key=value tag read from guest notes and pool comments
SCHEDULE_TAG_NAME = os.getenv("SCHEDULE_TAG_NAME", "AutoShutdownSchedule")
SIMULATE = os.getenv("AUTOSHUTDOWN_SIMULATE", "0") == "1"

# --- State / Log paths ---
LOG_FILE = os.getenv("LOG_FILE", "proxmox_autoshutdown.log")
