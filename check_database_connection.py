#!/usr/bin/env python3
"""Test connectivity to the database server the test databases are created on."""

import sys
from pathlib import Path

from datalayer.database import check_connectivity
from testsupport.app_settings import CONNECTION_STRING_NAME, get_connection_template, get_settings
from testsupport.exceptions import ConfigurationMissing
from testsupport.lifecycle import SERVER_DIALECTS


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    settings_dir = argv[0] if argv else str(Path(__file__).resolve().parent / "tests")

    print("=== Test database connection check ===")
    try:
        template = get_connection_template(get_settings(settings_dir))
    except ConfigurationMissing as exc:
        print(f"❌ {exc}")
        return 1

    print(f"  {CONNECTION_STRING_NAME}: {template}")
    print()

    # 服务器引擎检查管理库；SQLite 只检查驱动，避免生成模板文件
    dialect = SERVER_DIALECTS.get(template.backend)
    if template.is_sqlite:
        target = template.with_catalog(None)
    elif dialect is not None:
        target = template.with_catalog(dialect.admin_database)
    else:
        target = template
    results = check_connectivity({template.backend: target.render()})
    for backend, info in results.items():
        mark = "✅" if info["status"] == "UP" else "❌"
        print(f"{mark} {backend} ({target}): {info['status']}, {info['message']}")

    print()
    all_ok = all(info["status"] == "UP" for info in results.values())
    if all_ok:
        print("🎉 Database server reachable!")
    else:
        print("⚠️  Database server unreachable, check appsettings.json or the environment.")
    return 0 if all_ok else 1


if __name__ == "__main__":
    sys.exit(main())
