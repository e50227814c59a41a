# scripts/init_db.py
import sqlite3
import os
import sys

from popcorn.repo import SCHEMA

DB = sys.argv[1] if len(sys.argv) > 1 else os.path.join("data", "popcorn.db")
os.makedirs(os.path.dirname(DB) or ".", exist_ok=True)
with sqlite3.connect(DB) as c:
    c.executescript(SCHEMA)
    print("initialized key-value store at", DB)
