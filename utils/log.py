# county_mortality/utils/log.py
import time
from datetime import datetime

_T0 = time.time()

def stamp(msg):
    now = datetime.now().strftime("%H:%M:%S")
    print(f"[{now} + {time.time()-_T0:6.2f}s] {msg}", flush=True)

class Step:
    def __init__(self, name): self.name = name; self.t0 = None
    def __enter__(self): self.t0 = time.time(); stamp(f"▶ {self.name} ..."); return self
    def __exit__(self, et, ev, tb):
        dt = time.time() - self.t0
        stamp(("✓ " if et is None else "✖ ") + f"{self.name} {'done' if et is None else 'failed'} in {dt:.2f}s")
        return False
