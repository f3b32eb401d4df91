# tests/test_mandate_service.py
import os
import threading

import pytest
from sqlalchemy.exc import OperationalError

from models import AccountOrder, Customer, CustomerStatus, DirectDebitAccount, DirectDebitMandate, GeneratedPDF
from schemas.mandate import MandateSubmission
from services.errors import AlreadySubmittedError, CustomerNotFoundError, MandateNotFoundError, MandateStorageError
from services.mandate_service import (
    MandateSubmissionPipeline,
    generate_document,
    get_mandate,
    list_mandates,
    pdf_filename,
)
from services.signatures import SignatureStore, signature_folder
from tests.conftest import PNG_DATA_URI


def _submit(session, cipher, signature_store, payload, client_ip="198.51.100.7"):
    pipeline = MandateSubmissionPipeline(session, cipher, signature_store)
    return pipeline.submit(MandateSubmission(**payload), client_ip=client_ip)


def test_submit_stores_encrypted_mandate(db_session, cipher, signature_store, make_customer, mandate_payload):
    customer = make_customer()
    mandate = _submit(db_session, cipher, signature_store, mandate_payload(customer.id, accounts=2))

    stored = get_mandate(db_session, mandate.id)
    assert stored.customer_id == customer.id
    assert stored.agreement_accepted is True
    assert stored.ip_address == "198.51.100.7"
    assert stored.digital_signature_path == PNG_DATA_URI

    assert stored.ghana_card_number != "GHA-123456789-0"
    assert cipher.decrypt(stored.ghana_card_number) == "GHA-123456789-0"

    assert [a.account_order for a in stored.accounts] == [AccountOrder.FIRST, AccountOrder.SECOND]
    assert stored.accounts[0].bank_name == "GCB Bank"
    assert stored.accounts[0].account_number != "1234567890123"
    assert cipher.decrypt(stored.accounts[0].account_number) == "1234567890123"


def test_submit_marks_customer_submitted_and_clears_token(db_session, cipher, signature_store, make_customer, mandate_payload):
    customer = make_customer()
    _submit(db_session, cipher, signature_store, mandate_payload(customer.id))

    row = db_session.get(Customer, customer.id)
    assert row.status == CustomerStatus.SUBMITTED
    assert row.session_token is None


def test_second_submission_is_rejected(db_session, cipher, signature_store, make_customer, mandate_payload):
    customer = make_customer()
    _submit(db_session, cipher, signature_store, mandate_payload(customer.id))

    with pytest.raises(AlreadySubmittedError):
        _submit(db_session, cipher, signature_store, mandate_payload(customer.id))

    assert db_session.query(DirectDebitMandate).count() == 1


def test_unknown_customer_is_rejected(db_session, cipher, signature_store, mandate_payload):
    with pytest.raises(CustomerNotFoundError):
        _submit(db_session, cipher, signature_store, mandate_payload("no-such-customer"))


def test_concurrent_submissions_store_one_mandate(database, cipher, signature_store, make_customer, mandate_payload):
    customer = make_customer()
    barrier = threading.Barrier(2)
    results = []
    lock = threading.Lock()

    def worker():
        session = database.SessionLocal()
        try:
            barrier.wait()
            mandate = _submit(session, cipher, signature_store, mandate_payload(customer.id))
            outcome = ("ok", mandate.id)
        except AlreadySubmittedError:
            outcome = ("already", None)
        finally:
            session.close()
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert sorted(kind for kind, _ in results) == ["already", "ok"]

    with database.session() as session:
        assert session.query(DirectDebitMandate).filter_by(customer_id=customer.id).count() == 1
        assert session.get(Customer, customer.id).status == CustomerStatus.SUBMITTED


def test_storage_failure_rolls_back_everything(db_session, cipher, signature_store, make_customer, mandate_payload, monkeypatch, database):
    customer = make_customer()

    def broken_flush(*args, **kwargs):
        raise OperationalError("INSERT INTO direct_debit_mandates", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "flush", broken_flush)

    with pytest.raises(MandateStorageError):
        _submit(db_session, cipher, signature_store, mandate_payload(customer.id))

    with database.session() as session:
        row = session.get(Customer, customer.id)
        assert row.status == CustomerStatus.PENDING
        assert row.session_token == customer.session_token
        assert session.query(DirectDebitMandate).count() == 0


def test_blob_signature_storage(db_session, cipher, storage, make_customer, mandate_payload):
    customer = make_customer()
    store = SignatureStore(storage, mode="blob")

    mandate = _submit(db_session, cipher, store, mandate_payload(customer.id))

    reference = mandate.digital_signature_path
    assert not reference.startswith("data:")
    assert reference.endswith(".png")
    assert os.path.isfile(reference)
    assert store.load(reference, customer.id).startswith(b"\x89PNG")


def _signature_files(storage, customer_id):
    directory = os.path.join(storage.root, signature_folder(customer_id))
    return os.listdir(directory) if os.path.isdir(directory) else []


def test_blob_signature_removed_when_transaction_fails(db_session, cipher, storage, make_customer, mandate_payload, monkeypatch, database):
    customer = make_customer()
    store = SignatureStore(storage, mode="blob")
    flush = db_session.flush

    def failing_insert(*args, **kwargs):
        if db_session.new:
            raise OperationalError("INSERT INTO direct_debit_mandates", {}, Exception("disk I/O error"))
        return flush(*args, **kwargs)

    monkeypatch.setattr(db_session, "flush", failing_insert)

    with pytest.raises(MandateStorageError):
        _submit(db_session, cipher, store, mandate_payload(customer.id))

    assert _signature_files(storage, customer.id) == []
    with database.session() as session:
        assert session.get(Customer, customer.id).status == CustomerStatus.PENDING


def test_blob_signature_not_written_for_rejected_submission(db_session, cipher, storage, make_customer, mandate_payload):
    customer = make_customer()
    store = SignatureStore(storage, mode="blob")
    _submit(db_session, cipher, store, mandate_payload(customer.id))

    with pytest.raises(AlreadySubmittedError):
        _submit(db_session, cipher, store, mandate_payload(customer.id))

    assert len(_signature_files(storage, customer.id)) == 1


def test_blob_write_failure_keeps_customer_pending(db_session, cipher, storage, make_customer, mandate_payload, monkeypatch, database):
    customer = make_customer()
    store = SignatureStore(storage, mode="blob")

    def broken_put(*args, **kwargs):
        raise OSError("No space left on device")

    monkeypatch.setattr(storage, "put", broken_put)

    with pytest.raises(MandateStorageError):
        _submit(db_session, cipher, store, mandate_payload(customer.id))

    with database.session() as session:
        assert session.get(Customer, customer.id).status == CustomerStatus.PENDING
        assert session.query(DirectDebitMandate).count() == 0


def test_signature_load_only_reads_own_folder(tmp_path, storage):
    store = SignatureStore(storage, mode="blob")
    outside = tmp_path / "server_side_secret.png"
    outside.write_bytes(b"\x89PNG secret")
    other = storage.put(b"\x89PNG other", signature_folder("other-customer"), "sig.png", "image/png")
    own = storage.put(b"\x89PNG own", signature_folder("customer-1"), "sig.png", "image/png")

    assert store.load(str(outside), "customer-1") is None
    assert store.load(other, "customer-1") is None
    assert store.load(os.path.join(storage.root, signature_folder("customer-1"), "..", "other-customer", "sig.png"), "customer-1") is None
    assert store.load(own, "customer-1") == b"\x89PNG own"


def test_local_storage_refuses_paths_outside_root(tmp_path, storage):
    outside = tmp_path / "outside.txt"
    outside.write_bytes(b"secret")

    assert storage.get(str(outside)) is None
    storage.delete(str(outside))
    assert outside.exists()



def test_get_mandate_not_found(db_session):
    with pytest.raises(MandateNotFoundError):
        get_mandate(db_session, "missing")


def test_list_mandates_newest_first(db_session, cipher, signature_store, make_customer, mandate_payload):
    first = make_customer(full_name="Kofi Boateng")
    second = make_customer(full_name="Efua Owusu")
    _submit(db_session, cipher, signature_store, mandate_payload(first.id))
    _submit(db_session, cipher, signature_store, mandate_payload(second.id))

    names = [m.customer.full_name for m in list_mandates(db_session)]
    assert sorted(names) == ["Efua Owusu", "Kofi Boateng"]
    assert len(names) == 2


def test_pdf_filename(db_session, cipher, signature_store, make_customer, mandate_payload):
    customer = make_customer(full_name="  Ama  Serwaa Mensah ")
    mandate = get_mandate(db_session, _submit(db_session, cipher, signature_store, mandate_payload(customer.id)).id)

    assert pdf_filename(mandate) == f"Mandate_Ama_Serwaa_Mensah_{mandate.id[:8]}.pdf"


def test_generate_document_records_pdf(database, db_session, cipher, signature_store, storage, make_customer, mandate_payload):
    customer = make_customer()
    mandate = _submit(db_session, cipher, signature_store, mandate_payload(customer.id))

    class StubRenderer:
        def render(self, mandate):
            return b"%PDF-1.4 stub"

    record = generate_document(database, StubRenderer(), storage, mandate.id)

    assert record is not None
    with open(record.file_path, "rb") as f:
        assert f.read() == b"%PDF-1.4 stub"
    assert db_session.query(GeneratedPDF).filter_by(mandate_id=mandate.id).count() == 1


def test_generate_document_failure_leaves_mandate(database, db_session, cipher, signature_store, storage, make_customer, mandate_payload):
    customer = make_customer()
    mandate = _submit(db_session, cipher, signature_store, mandate_payload(customer.id))

    class FailingRenderer:
        def render(self, mandate):
            raise RuntimeError("boom")

    assert generate_document(database, FailingRenderer(), storage, mandate.id) is None
    assert db_session.query(GeneratedPDF).count() == 0
    assert db_session.query(DirectDebitMandate).count() == 1


def test_submit_three_accounts(db_session, cipher, signature_store, make_customer, mandate_payload):
    customer = make_customer()
    mandate = _submit(db_session, cipher, signature_store, mandate_payload(customer.id, accounts=3))

    stored = get_mandate(db_session, mandate.id)
    assert db_session.query(DirectDebitAccount).filter_by(mandate_id=mandate.id).count() == 3
    assert [a.account_order for a in stored.accounts] == [AccountOrder.FIRST, AccountOrder.SECOND, AccountOrder.THIRD]
    assert [a.bank_name for a in stored.accounts] == ["GCB Bank", "Ecobank Ghana", "Fidelity Bank"]
    assert [cipher.decrypt(a.account_number) for a in stored.accounts] == ["1234567890123", "9876543210", "5555666677"]
