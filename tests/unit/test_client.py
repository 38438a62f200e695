"""
Module: tests/unit/test_client.py

What:
    Validate :class:`gmailremote.imap.client.GmailImapClient`: connection
    lifecycle, mailbox selection errors, FETCH normalisation, listing, the
    action throttle, and the pairing of SELECT with the commands that follow
    it under concurrency.

Why:
    Every message operation runs through this session. Selection mistakes
    silently edit the wrong mailbox, so the lock discipline is tested directly.

How:
    Use the ``imap_client`` fixture (real client over :class:`FakeGmailBackend`)
    and, for login failures, build the client by hand with a patched
    ``IMAPClient`` factory.
"""

import json
import threading

import pytest
from imapclient.exceptions import IMAPClientError
from imapclient.response_parser import parse_fetch_response

from fakes import ALL_MAIL, INBOX, FakeGmailBackend

from gmailremote.errors import MailboxSelectionError, RateLimitError, TransportError
from gmailremote.imap.client import GmailImapClient, GmailImapConfig, _normalise_bundle
from gmailremote.imap.session import StoreOp
from gmailremote.message import RemoteMessage


def test_config_defaults_come_from_runtime_config():
    config = GmailImapConfig(username="user@example.test", password="secret")

    assert config.host == "imap.example.test"
    assert config.port == 993
    assert config.ssl is True
    assert "secret" not in repr(config)


def test_login_failure_raises_transport_error(monkeypatch):
    backend = FakeGmailBackend()
    backend.fail_next("LOGIN")
    monkeypatch.setattr("gmailremote.imap.client.IMAPClient", lambda host, **kwargs: backend)
    client = GmailImapClient(GmailImapConfig(username="user@example.test", password="bad"))

    with pytest.raises(TransportError) as excinfo:
        with client:
            pass

    assert isinstance(excinfo.value.__cause__, IMAPClientError)
    with pytest.raises(RuntimeError):
        client.client


def test_exit_logs_out(monkeypatch):
    backend = FakeGmailBackend()
    monkeypatch.setattr("gmailremote.imap.client.IMAPClient", lambda host, **kwargs: backend)

    with GmailImapClient(GmailImapConfig(username="u", password="p")) as client:
        assert backend.logged_in
        client.select_mailbox(INBOX)

    assert not backend.logged_in
    assert client.selected is None


def test_select_failure_is_mailbox_selection_error(capsys, imap_client):
    client, backend = imap_client
    client.select_mailbox(INBOX)
    backend.fail_next("SELECT")

    with pytest.raises(MailboxSelectionError):
        client.select_mailbox(ALL_MAIL)

    assert client.selected is None
    records = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    failure = next(record for record in records if record["msg"] == "select failed")
    assert failure["lvl"] == "ERROR"
    assert failure["mailbox"] == ALL_MAIL


def test_selection_error_is_a_transport_error(imap_client):
    client, _backend = imap_client

    with pytest.raises(TransportError):
        client.run_in_mailbox("[Gmail]/Missing", lambda: None)


def test_run_in_mailbox_returns_work_result(imap_client):
    client, backend = imap_client

    result = client.run_in_mailbox(ALL_MAIL, lambda: backend.selected)

    assert result == ALL_MAIL
    assert client.selected == ALL_MAIL


def test_normalise_bundle_decodes_keys_flags_and_labels():
    bundle = _normalise_bundle(
        {
            b"UID": 7,
            b"FLAGS": (b"\\Seen", b"$Forwarded"),
            b"X-GM-LABELS": (b"\\Important", b"Re&AOc-us"),
            b"X-GM-MSGID": 42,
            b"SEQ": 1,
        }
    )

    assert bundle == {
        "UID": 7,
        "FLAGS": frozenset({"\\Seen", "$Forwarded"}),
        "X-GM-LABELS": frozenset({"\\Important", "Reçus"}),
        "X-GM-MSGID": 42,
        "SEQ": 1,
    }


def test_normalise_bundle_tolerates_missing_collections():
    bundle = _normalise_bundle({b"FLAGS": None, b"X-GM-LABELS": ()})

    assert bundle["FLAGS"] == frozenset()
    assert bundle["X-GM-LABELS"] == frozenset()


def test_normalise_bundle_stringifies_numeric_labels(imap_client):
    """
    What:
        Normalise a FETCH response parsed by imapclient whose label list holds
        an all-digit label.

    Why:
        imapclient parses the atom ``2024`` as an ``int``; labels must still be
        strings so membership checks match what ``add_label`` was given.
    """
    client, _backend = imap_client
    parsed = parse_fetch_response(
        [b"1 (UID 5 FLAGS (\\Seen) X-GM-MSGID 77 X-GM-LABELS (\\Inbox 2024 Work))"]
    )

    bundle = _normalise_bundle(parsed[5])
    message = RemoteMessage(client, INBOX, attributes=bundle)

    assert message.labels == frozenset({"\\Inbox", "2024", "Work"})
    assert message.uid == 5


def test_numeric_label_round_trip(imap_client):
    client, backend = imap_client
    uids = backend.deliver(labels=())
    message = RemoteMessage(client, INBOX, uids[INBOX])

    message.add_label("2024")

    assert "2024" in message.labels


def test_fetch_returns_none_for_unknown_uid(imap_client):
    client, _backend = imap_client

    result = client.run_in_mailbox(INBOX, lambda: client.fetch_by_uid(999, ["FLAGS"]))

    assert result is None


def test_list_messages_returns_lazy_handles(imap_client):
    client, backend = imap_client
    first = backend.deliver(subject="First")
    second = backend.deliver(subject="Second")

    messages = client.list_messages(INBOX)

    assert [message.uid for message in messages] == [first[INBOX], second[INBOX]]
    assert all(isinstance(message, RemoteMessage) for message in messages)
    assert all(message.mailbox == INBOX for message in messages)
    assert not any(message.is_cached for message in messages)
    assert backend.count("FETCH") == 0


def test_list_messages_passes_filters(imap_client):
    client, backend = imap_client
    uids = backend.deliver()
    msgid = backend.record(ALL_MAIL, uids[ALL_MAIL]).msgid

    (found,) = client.list_messages(ALL_MAIL, {"message_id": msgid})

    assert found.uid == uids[ALL_MAIL]
    search = next(entry for entry in backend.commands if entry[0] == "SEARCH")
    assert search == ("SEARCH", ALL_MAIL, ["X-GM-MSGID", msgid])


def test_store_translates_each_operation(imap_client):
    client, backend = imap_client
    uids = backend.deliver(labels=())

    def apply_all():
        for op, token in (
            (StoreOp.ADD_FLAGS, "\\Seen"),
            (StoreOp.REMOVE_FLAGS, "\\Seen"),
            (StoreOp.ADD_LABELS, b"Work"),
            (StoreOp.REMOVE_LABELS, b"Work"),
        ):
            client.store_by_uid(uids[INBOX], op, [token])

    client.run_in_mailbox(INBOX, apply_all)

    assert [store[2] for store in backend.stores()] == [
        "+FLAGS",
        "-FLAGS",
        "+X-GM-LABELS",
        "-X-GM-LABELS",
    ]


def test_throttle_caps_mutating_commands(imap_client):
    """The test configuration allows 50 STOREs per minute; the 51st fails."""
    client, backend = imap_client
    uids = backend.deliver()
    message = RemoteMessage(client, INBOX, uids[INBOX])

    for _ in range(50):
        message.mark_read()

    with pytest.raises(RateLimitError) as excinfo:
        message.mark_read()

    assert excinfo.value.limit == 50
    assert isinstance(excinfo.value, TransportError)
    assert excinfo.value.__cause__ is None

    assert len(backend.stores()) == 50


def test_concurrent_operations_keep_selection_paired(imap_client):
    """
    What:
        Run STOREs against two mailbox views from several threads.

    Why:
        Without the session lock a SELECT from one thread can land between
        another thread's SELECT and STORE, editing the wrong view.

    How:
        Check that every STORE in the log names the mailbox whose UID it
        carries and directly follows a SELECT of that mailbox.
    """
    client, backend = imap_client
    uids = backend.deliver()
    inbox = RemoteMessage(client, INBOX, uids[INBOX])
    all_mail = RemoteMessage(client, ALL_MAIL, uids[ALL_MAIL])

    def worker(message):
        for _ in range(5):
            message.star()

    threads = [threading.Thread(target=worker, args=(m,)) for m in (inbox, all_mail) * 2]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    expected_uid = {INBOX: uids[INBOX], ALL_MAIL: uids[ALL_MAIL]}
    for previous, entry in zip(backend.commands, backend.commands[1:]):
        if entry[0] == "STORE":
            assert previous == ("SELECT", entry[1])
            assert entry[2] == (expected_uid[entry[1]],)
    assert len(backend.stores()) == 20
