from app.database import make_engine, normalize_database_url


def test_postgres_scheme_is_rewritten():
    url = "postgres://user:pw@db.proj.supabase.co:5432/postgres"
    assert normalize_database_url(url) == "postgresql://user:pw@db.proj.supabase.co:5432/postgres"


def test_other_schemes_are_untouched():
    assert normalize_database_url("sqlite:///./dimdim.db") == "sqlite:///./dimdim.db"


def test_sqlite_engine_allows_threadpool_sessions(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path}/test.db")
    try:
        with engine.connect() as conn:
            assert conn.exec_driver_sql("select 1").scalar() == 1
    finally:
        engine.dispose()
