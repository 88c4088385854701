"""
Shared pytest setup: make the project root importable when the
package is not installed.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
