"""Test configuration ensuring the repository root is importable."""
import sys
import os
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent

# appsettings.json 与测试放在一起，默认连接串指向 tests/test_databases 下的 SQLite 文件
os.environ.setdefault("TESTSUPPORT_SETTINGS_DIR", str(TESTS_DIR))

PROJECT_ROOT = TESTS_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def sqlite_template(tmp_path):
    """A connection template whose databases live in this test's tmp_path."""
    from testsupport.descriptor import ConnectionDescriptor

    return ConnectionDescriptor.parse(f"sqlite:///{tmp_path / 'BookApp'}")
