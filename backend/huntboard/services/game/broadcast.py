"""Scoreboard distribution to live viewers.

The hub owns an explicit registry of event id -> connected socket ids and
emits to each sid directly instead of leaning on Socket.IO rooms. Every
push carries the full ranked list, so a viewer that missed a message is
corrected by the next one. Pushes happen after scoreboard-affecting
mutations, on demand, and on a fixed interval as a backstop.
"""

import threading
from typing import Dict, List, Optional, Set

from huntboard import db
from .scoreboard import build_scoreboard

NAMESPACE = '/ws'
UPDATE_EVENT = 'live_data_update'


class BroadcastHub:
    def __init__(self, namespace: str = NAMESPACE):
        self.namespace = namespace
        self.app = None
        self.socketio = None
        self._subscribers: Dict[int, Set[str]] = {}
        self._lock = threading.Lock()
        self._repush_started = False

    def init_app(self, app, socketio) -> None:
        self.app = app
        self.socketio = socketio
        with self._lock:
            self._subscribers = {}
            self._repush_started = False

    # ---- registry ----

    def subscribe(self, event_id: int, sid: str) -> int:
        with self._lock:
            group = self._subscribers.setdefault(event_id, set())
            group.add(sid)
            count = len(group)
        self.app.logger.info(f"[subscribe] event={event_id} sid={sid} subscribers={count}")
        self._ensure_repush_loop()
        return count

    def unsubscribe(self, event_id: int, sid: str) -> None:
        with self._lock:
            group = self._subscribers.get(event_id)
            if group is None:
                return
            group.discard(sid)
            if not group:
                del self._subscribers[event_id]
        self.app.logger.info(f"[unsubscribe] event={event_id} sid={sid}")

    def remove_connection(self, sid: str) -> List[int]:
        """Drop a disconnected sid from every group it joined."""
        left = []
        with self._lock:
            for event_id in list(self._subscribers):
                group = self._subscribers[event_id]
                if sid in group:
                    group.discard(sid)
                    left.append(event_id)
                    if not group:
                        del self._subscribers[event_id]
        return left

    def subscribers(self, event_id: int) -> List[str]:
        with self._lock:
            return sorted(self._subscribers.get(event_id, ()))

    def active_events(self) -> List[int]:
        with self._lock:
            return [event_id for event_id, group in self._subscribers.items() if group]

    # ---- delivery ----

    def scoreboard_payload(self, event_id: int) -> dict:
        return {'type': 'scoreboard', 'event_id': event_id, 'data': build_scoreboard(event_id)}

    def publish_scoreboard(self, event_id: int, payload: Optional[dict] = None) -> int:
        """Recompute and push the full scoreboard to every subscriber of the event.

        Returns the number of sids the update was addressed to.
        """
        targets = self.subscribers(event_id)
        if not targets:
            return 0
        if payload is None:
            payload = self.scoreboard_payload(event_id)
        for sid in targets:
            self.socketio.emit(UPDATE_EVENT, payload, to=sid, namespace=self.namespace)
        self.app.logger.info(
            f"[broadcast] event={event_id} subscribers={len(targets)} teams={len(payload['data'])}"
        )
        return len(targets)

    def send_scoreboard(self, event_id: int, sid: str) -> dict:
        """Pull: push a fresh scoreboard to a single connection."""
        payload = self.scoreboard_payload(event_id)
        self.socketio.emit(UPDATE_EVENT, payload, to=sid, namespace=self.namespace)
        return payload

    def repush_all(self) -> int:
        pushed = 0
        for event_id in self.active_events():
            pushed += self.publish_scoreboard(event_id)
        return pushed

    # ---- periodic backstop ----

    def _ensure_repush_loop(self) -> None:
        app = self.app
        if app.config.get('TESTING') and not app.config.get('ENABLE_REPUSH_IN_TESTS'):
            return
        interval = int(app.config.get('SCOREBOARD_REPUSH_SEC', 0))
        if interval <= 0:
            return
        with self._lock:
            if self._repush_started:
                return
            self._repush_started = True
        app.logger.info(f"[repush-start] interval={interval}s")
        self.socketio.start_background_task(self._repush_worker, interval)

    def _repush_worker(self, interval: int) -> None:
        app = self.app
        while True:
            self.socketio.sleep(interval)
            with app.app_context():
                try:
                    pushed = self.repush_all()
                    if pushed:
                        app.logger.debug(f"[repush] delivered to {pushed} subscribers")
                except Exception:
                    app.logger.exception('[repush] scoreboard repush failed')
                finally:
                    db.session.remove()


hub = BroadcastHub()
