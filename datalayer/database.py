from typing import Dict, Mapping, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError


def _probe_sql(backend: str) -> str:
    if backend == "oracle":
        return "SELECT 1 FROM DUAL"
    return "SELECT 1"


def check_connectivity(urls: Mapping[str, Union[str, URL]]) -> Dict[str, Dict[str, str]]:
    """Check connectivity for each named database URL and return a status map."""

    results: Dict[str, Dict[str, str]] = {}
    for name, url in urls.items():
        try:
            engine = create_engine(url, pool_pre_ping=True)
        except (SQLAlchemyError, ImportError) as exc:
            # 缺少数据库驱动时 create_engine 即失败
            results[name] = {"status": "DOWN", "message": str(exc)}
            continue
        try:
            with engine.connect() as conn:
                conn.execute(text(_probe_sql(engine.url.get_backend_name())))
            results[name] = {"status": "UP", "message": "connection OK"}
        except SQLAlchemyError as exc:
            results[name] = {"status": "DOWN", "message": str(exc)}
        finally:
            engine.dispose()

    return results
