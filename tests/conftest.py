import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path so `import walletscope` works when running pytest from root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tests.fakes import make_tx_payload  # noqa: E402


@pytest.fixture
def tx_payload():
    """A base64 getTransaction payload plus (payer, target, program) keys."""
    return make_tx_payload()
