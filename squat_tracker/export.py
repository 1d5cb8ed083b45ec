from typing import Callable, Optional

from .stats import Snapshot


class Exporter:
    def __init__(self, enabled: bool = False, destination: Optional[str] = None):
        self.enabled = enabled
        self.destination = destination

    def on_snapshot(self, snapshot: Snapshot):
        return


class NoOpExporter(Exporter):
    def __init__(self):
        super().__init__(enabled=False)


class CallbackExporter(Exporter):
    """Forwards every snapshot to a plain function (e.g. a display update)."""

    def __init__(self, callback: Callable[[Snapshot], None], events=None):
        super().__init__(enabled=True)
        self.callback = callback
        self.events = None if events is None else set(events)

    def on_snapshot(self, snapshot: Snapshot):
        if self.events is not None and snapshot.event not in self.events:
            return
        self.callback(snapshot)


class PrintExporter(Exporter):
    def __init__(self, enabled: bool = True, destination: Optional[str] = None, reps_only: bool = True):
        super().__init__(enabled=enabled, destination=destination)
        self.reps_only = reps_only

    def on_snapshot(self, snapshot: Snapshot):
        if not self.enabled:
            return
        if self.reps_only and not snapshot.rep_incremented:
            return
        payload = snapshot.to_dict()
        payload["destination"] = self.destination
        print(f"[EXPORT] {payload}")
