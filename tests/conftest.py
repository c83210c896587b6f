import os
import sys

# Keep test runs from writing a log file into the working tree.
os.environ["LOG_FILE"] = ""

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
