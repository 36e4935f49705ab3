import sys
from pathlib import Path

# Ensure package path for local src and the MCP server package
ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "parallel_thought" / "src"
for path in (ROOT, SRC):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))
