"""Tests for backend selection and cache consistency."""

from __future__ import annotations

import shutil
import tempfile
import time
import unittest
from unittest.mock import MagicMock

from matchboard.core.constants import SYNC_CODE_KEY
from matchboard.errors import ValidationError
from matchboard.match.models import GameResult, UserRole
from matchboard.storage import KeyValueStorage, LocalStore, Settings
from matchboard.sync.synchronizer import SessionSynchronizer, SyncMode
from tests.helpers import FakeBinClient, make_session, make_table


class SynchronizerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.root, True)
        self.storage = KeyValueStorage(self.root)
        self.local = LocalStore(self.storage)
        self.bins = FakeBinClient()
        self.sync = SessionSynchronizer(self.storage, self.local, bin_client=self.bins, interval=0.05)
        self.addCleanup(self.sync.stop)

    def _document_store(self, sessions=()):
        store = MagicMock()
        store.list_sessions.return_value = list(sessions)
        store.subscribe.return_value = MagicMock(name="unsubscribe")
        return store

    # Mode selection

    def test_local_by_default(self) -> None:
        self.assertIs(self.sync.mode, SyncMode.LOCAL)
        self.assertIs(self.sync.store, self.local)
        self.assertIsNone(self.sync.sync_code)

    def test_stored_sync_code_selects_shared_bin(self) -> None:
        self.storage.set(SYNC_CODE_KEY, "abc")
        self.assertIs(self.sync.mode, SyncMode.SHARED_BIN)
        self.assertEqual(self.sync.sync_code, "abc")

    def test_document_store_takes_precedence(self) -> None:
        self.storage.set(SYNC_CODE_KEY, "abc")
        sync = SessionSynchronizer(self.storage, self.local, self.bins, self._document_store())
        self.assertIs(sync.mode, SyncMode.DOCUMENT)
        self.assertIsNone(sync.sync_code)

    # Cache

    def test_writes_show_up_immediately(self) -> None:
        listener = MagicMock()
        self.sync.subscribe(listener)
        revision = self.sync.revision

        self.assertTrue(self.sync.add_session(make_session("s1")))
        self.assertEqual([s.id for s in self.sync.sessions], ["s1"])
        self.assertGreater(self.sync.revision, revision)
        listener.assert_called_with(self.sync.sessions)

    def test_last_write_wins(self) -> None:
        self.sync.add_session(make_session("s1"))
        self.sync.update_session(make_session("s1", tables=[make_table(1, result=GameResult.WIN, submitted_by="A")]))
        second = make_session("s1", tables=[make_table(1, result=GameResult.LOSS, submitted_by="B")])
        self.sync.update_session(second)
        self.assertEqual(self.sync.sessions, [second])
        self.assertEqual(self.local.list_sessions(), [second])

    def test_delete(self) -> None:
        self.sync.add_session(make_session("s1"))
        self.assertTrue(self.sync.delete_session("s1"))
        self.assertEqual(self.sync.sessions, [])

    def test_refresh_discarded_after_mode_change(self) -> None:
        self.local.add_session(make_session("s1"))

        def list_then_stop():
            self.sync.stop()
            return [make_session("s1")]

        self.local.list_sessions = MagicMock(side_effect=list_then_stop)
        self.assertFalse(self.sync.refresh())
        self.assertEqual(self.sync.sessions, [])

    def test_failing_listener_is_isolated(self) -> None:
        self.sync.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        self.sync.add_session(make_session("s1"))
        self.assertEqual(len(self.sync.sessions), 1)

    # Shared bin

    def test_publish_requires_sessions(self) -> None:
        with self.assertRaises(ValidationError):
            self.sync.publish()
        self.assertFalse(self.sync.publishing)

    def test_publish_switches_to_shared_bin(self) -> None:
        self.sync.add_session(make_session("s1"))
        code = self.sync.publish()
        self.assertEqual(code, "bin1")
        self.assertIs(self.sync.mode, SyncMode.SHARED_BIN)
        self.assertEqual([s["id"] for s in self.bins.bins[code]], ["s1"])

    def test_second_publish_while_in_flight_is_ignored(self) -> None:
        self.sync.add_session(make_session("s1"))
        nested = []
        create = self.bins.create

        def create_and_retry(sessions):
            nested.append(self.sync.publish())
            return create(sessions)

        self.bins.create = create_and_retry
        self.assertEqual(self.sync.publish(), "bin1")
        self.assertEqual(nested, [None])
        self.assertEqual(self.bins.created, 1)

    def test_publish_failure_stays_local(self) -> None:
        self.sync.add_session(make_session("s1"))
        self.bins.fail = True
        self.assertIsNone(self.sync.publish())
        self.assertIs(self.sync.mode, SyncMode.LOCAL)

    def test_join_pulls_remote_list(self) -> None:
        self.bins.bins["abc"] = [make_session("remote").to_dict()]
        self.assertTrue(self.sync.join(" abc "))
        self.assertEqual(self.storage.get(SYNC_CODE_KEY), "abc")
        self.assertEqual([s.id for s in self.sync.sessions], ["remote"])

    def test_join_requires_code(self) -> None:
        with self.assertRaises(ValidationError):
            self.sync.join("  ")

    def test_failed_poll_keeps_cache(self) -> None:
        self.bins.bins["abc"] = [make_session("remote").to_dict()]
        self.sync.join("abc")
        self.bins.fail = True
        self.assertFalse(self.sync.refresh())
        self.assertEqual([s.id for s in self.sync.sessions], ["remote"])

    def test_shared_write_pushes(self) -> None:
        self.bins.bins["abc"] = []
        self.sync.join("abc")
        self.assertTrue(self.sync.add_session(make_session("s1")))
        self.assertEqual([s["id"] for s in self.bins.bins["abc"]], ["s1"])

    def test_clearing_code_serves_local_mirror(self) -> None:
        self.bins.bins["abc"] = [make_session("remote").to_dict()]
        self.sync.join("abc")
        self.sync.clear_sync_code()
        self.assertIs(self.sync.mode, SyncMode.LOCAL)
        self.assertIsNone(self.storage.get(SYNC_CODE_KEY))
        self.assertEqual([s.id for s in self.sync.sessions], ["remote"])

    # Lifecycle

    def test_local_start_follows_storage_changes(self) -> None:
        self.sync.start()
        self.assertTrue(self.sync.running)
        # Another writer on the same storage, like a second tab.
        LocalStore(self.storage).add_session(make_session("elsewhere"))
        self.assertEqual([s.id for s in self.sync.sessions], ["elsewhere"])
        self.sync.stop()
        self.assertFalse(self.sync.running)

    def _wait_for(self, sync, ids, timeout=2.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if [s.id for s in sync.sessions] == ids:
                return
            time.sleep(0.01)
        self.fail(f"cache still {[s.id for s in sync.sessions]}, expected {ids}")

    def test_poll_picks_up_remote_bin_changes(self) -> None:
        self.bins.bins["abc"] = [make_session("first").to_dict()]
        self.sync.join("abc")
        self.sync.start()
        # Another device pushes; nothing here calls refresh().
        self.bins.bins["abc"] = [make_session("first").to_dict(), make_session("second").to_dict()]
        self._wait_for(self.sync, ["first", "second"])

    def test_poll_picks_up_writes_from_another_process(self) -> None:
        self.sync.start()
        # A separate storage instance on the same directory sends no event here.
        LocalStore(KeyValueStorage(self.root)).add_session(make_session("outside"))
        self._wait_for(self.sync, ["outside"])

    def test_own_write_is_not_duplicated_by_storage_event(self) -> None:
        self.sync.start()
        self.sync.add_session(make_session("s1"))
        self.assertEqual([s.id for s in self.sync.sessions], ["s1"])

    def test_document_mode_follows_subscription(self) -> None:
        store = self._document_store([make_session("initial")])
        sync = SessionSynchronizer(self.storage, self.local, self.bins, store)
        sync.start()
        self.addCleanup(sync.stop)

        callback = store.subscribe.call_args.args[0]
        callback([make_session("pushed")])
        self.assertEqual([s.id for s in sync.sessions], ["pushed"])

        sync.stop()
        store.subscribe.return_value.assert_called_once_with()
        callback([make_session("late")])
        self.assertEqual([s.id for s in sync.sessions], ["pushed"])

    def test_document_mode_adds_newest_first(self) -> None:
        store = self._document_store()
        store.add_session.return_value = True
        sync = SessionSynchronizer(self.storage, self.local, self.bins, store)
        sync.add_session(make_session("older"))
        sync.add_session(make_session("newer"))
        self.assertEqual([s.id for s in sync.sessions], ["newer", "older"])

    def test_failed_subscription_degrades_to_local(self) -> None:
        store = self._document_store()
        store.subscribe.side_effect = RuntimeError("no network")
        self.local.add_session(make_session("local"))
        sync = SessionSynchronizer(self.storage, self.local, self.bins, store, interval=0.05)
        sync.start()
        self.addCleanup(sync.stop)
        self.assertIs(sync.mode, SyncMode.LOCAL)
        self.assertEqual([s.id for s in sync.sessions], ["local"])

    # Settings

    def test_settings_follow_document_store(self) -> None:
        store = self._document_store()
        store.get_settings.return_value = Settings("doc-admin", "doc-ref")
        sync = SessionSynchronizer(self.storage, self.local, self.bins, store)
        self.assertEqual(sync.get_settings().admin_password, "doc-admin")
        sync.update_password(UserRole.ADMIN, "x")
        store.update_password.assert_called_once_with(UserRole.ADMIN, "x")

    def test_settings_local_otherwise(self) -> None:
        self.storage.set(SYNC_CODE_KEY, "abc")
        self.sync.update_password(UserRole.REFEREE, "whistle")
        self.assertEqual(self.local.get_settings().referee_password, "whistle")
