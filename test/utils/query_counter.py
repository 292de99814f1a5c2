from sqlalchemy import event


class QueryCounter:
    """
    Records every statement sent to the database while active.

    Usage:
        with QueryCounter(engine) as counter:
            await repo.search({})
        assert counter.count <= 3
    """

    def __init__(self, engine):
        self._engine = engine.sync_engine
        self.statements: list[str] = []

    def _record(self, conn, cursor, statement, parameters, context, executemany):
        self.statements.append(statement)

    @property
    def count(self) -> int:
        return len(self.statements)

    def __enter__(self):
        event.listen(self._engine, "before_cursor_execute", self._record)
        return self

    def __exit__(self, *exc_info):
        event.remove(self._engine, "before_cursor_execute", self._record)
        return False
