"""Redistribution state machine, exercised directly against the service layer."""
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from medicycle.core.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError
from medicycle.db.base import Base
from medicycle.models.enums import MedicineStatus, RedistributionStatus, TransferStatus
from medicycle.models.medicine import Medicine
from medicycle.models.transfer import TransferRequest
from medicycle.models.user import User
from medicycle.services import transfer_service
from medicycle.services.transfer_service import TransferAction


@pytest.fixture
def parties(make_user):
    return make_user("City Pharmacy"), make_user("Clinic B")


def test_listing_moves_none_to_available(db, parties, make_medicine):
    owner, _ = parties
    med = make_medicine(owner)
    listed = transfer_service.list_for_redistribution(db, owner, med.id)
    assert listed.redistribution_status == RedistributionStatus.AVAILABLE.value


def test_cannot_list_someone_elses_medicine(db, parties, make_medicine):
    owner, other = parties
    med = make_medicine(owner)
    with pytest.raises(NotFoundError):
        transfer_service.list_for_redistribution(db, other, med.id)


def test_cannot_list_expired_medicine(db, parties, make_medicine):
    owner, _ = parties
    med = make_medicine(owner, days=-1)
    with pytest.raises(InvalidStateError):
        transfer_service.list_for_redistribution(db, owner, med.id)


def test_withdraw_returns_listing_to_none(db, parties, make_medicine):
    owner, _ = parties
    med = make_medicine(owner, redistribution_status="available")
    assert transfer_service.withdraw_listing(db, owner, med.id).redistribution_status == "none"
    with pytest.raises(InvalidStateError):
        transfer_service.withdraw_listing(db, owner, med.id)


def test_request_requires_available(db, parties, make_medicine):
    owner, requester = parties
    med = make_medicine(owner)
    with pytest.raises(InvalidStateError):
        transfer_service.request_transfer(db, requester, med.id)
    assert db.query(TransferRequest).count() == 0


def test_request_creates_pending_and_marks_requested(db, parties, make_medicine):
    owner, requester = parties
    med = make_medicine(owner, redistribution_status="available")

    request = transfer_service.request_transfer(db, requester, med.id)

    assert request.status == TransferStatus.PENDING.value
    assert request.from_user_id == owner.id
    assert request.to_user_id == requester.id
    db.refresh(med)
    assert med.redistribution_status == RedistributionStatus.REQUESTED.value


def test_second_request_on_same_batch_is_rejected(db, parties, make_user, make_medicine):
    owner, requester = parties
    third = make_user("Pharmacy C")
    med = make_medicine(owner, redistribution_status="available")
    transfer_service.request_transfer(db, requester, med.id)

    with pytest.raises(InvalidStateError):
        transfer_service.request_transfer(db, third, med.id)
    assert db.query(TransferRequest).filter(TransferRequest.medicine_id == med.id).count() == 1


def test_cannot_request_own_medicine(db, parties, make_medicine):
    owner, _ = parties
    med = make_medicine(owner, redistribution_status="available")
    with pytest.raises(InvalidStateError):
        transfer_service.request_transfer(db, owner, med.id)


def test_request_unknown_medicine(db, parties):
    _, requester = parties
    with pytest.raises(NotFoundError):
        transfer_service.request_transfer(db, requester, 999)


def test_accept_reassigns_owner_and_clears_status(db, parties, make_medicine):
    owner, requester = parties
    med = make_medicine(owner, redistribution_status="available")
    request = transfer_service.request_transfer(db, requester, med.id)

    result = transfer_service.respond(db, owner, request.id, TransferAction.ACCEPT)

    assert result.status == TransferStatus.ACCEPTED.value
    assert result.responded_at is not None
    med = db.get(Medicine, med.id)
    db.refresh(med)
    assert med.owner_id == requester.id
    assert med.redistribution_status == RedistributionStatus.NONE.value


def test_reject_releases_back_to_market(db, parties, make_medicine):
    owner, requester = parties
    med = make_medicine(owner, redistribution_status="available")
    request = transfer_service.request_transfer(db, requester, med.id)

    result = transfer_service.respond(db, owner, request.id, "reject")

    assert result.status == TransferStatus.REJECTED.value
    db.refresh(med)
    assert med.owner_id == owner.id
    assert med.redistribution_status == RedistributionStatus.AVAILABLE.value


def test_request_can_be_answered_only_once(db, parties, make_medicine):
    owner, requester = parties
    med = make_medicine(owner, redistribution_status="available")
    request = transfer_service.request_transfer(db, requester, med.id)
    transfer_service.respond(db, owner, request.id, TransferAction.ACCEPT)

    with pytest.raises(InvalidStateError):
        transfer_service.respond(db, owner, request.id, TransferAction.ACCEPT)
    with pytest.raises(InvalidStateError):
        transfer_service.respond(db, owner, request.id, TransferAction.REJECT)


def test_only_source_owner_can_respond(db, parties, make_medicine):
    owner, requester = parties
    med = make_medicine(owner, redistribution_status="available")
    request = transfer_service.request_transfer(db, requester, med.id)

    with pytest.raises(PermissionDeniedError):
        transfer_service.respond(db, requester, request.id, TransferAction.ACCEPT)
    db.refresh(med)
    assert med.owner_id == owner.id


def test_respond_unknown_request(db, parties):
    owner, _ = parties
    with pytest.raises(NotFoundError):
        transfer_service.respond(db, owner, 12345, TransferAction.ACCEPT)


def test_new_owner_can_relist_after_accept(db, parties, make_medicine):
    owner, requester = parties
    med = make_medicine(owner, redistribution_status="available")
    request = transfer_service.request_transfer(db, requester, med.id)
    transfer_service.respond(db, owner, request.id, TransferAction.ACCEPT)

    relisted = transfer_service.list_for_redistribution(db, requester, med.id)
    assert relisted.redistribution_status == RedistributionStatus.AVAILABLE.value


def test_market_excludes_own_and_unlisted(db, parties, make_medicine):
    owner, viewer = parties
    listed = make_medicine(owner, name="Listed", redistribution_status="available")
    make_medicine(owner, name="Unlisted")
    make_medicine(viewer, name="Mine", redistribution_status="available")

    items = transfer_service.market(db, viewer)

    assert [i["id"] for i in items] == [listed.id]
    assert items[0]["owner"]["username"] == "City Pharmacy"
    assert items[0]["risk"]["level"] == "SAFE"


def test_pending_and_outgoing_views(db, parties, make_medicine):
    owner, requester = parties
    med = make_medicine(owner, redistribution_status="available")
    request = transfer_service.request_transfer(db, requester, med.id)

    assert [r.id for r in transfer_service.pending_for_owner(db, owner)] == [request.id]
    assert transfer_service.pending_for_owner(db, requester) == []
    assert [r.id for r in transfer_service.outgoing_for_requester(db, requester)] == [request.id]

    transfer_service.respond(db, owner, request.id, TransferAction.REJECT)
    assert transfer_service.pending_for_owner(db, owner) == []
    assert transfer_service.outgoing_for_requester(db, requester)[0].status == "rejected"


def test_transfer_as_dict_includes_parties(db, parties, make_medicine):
    owner, requester = parties
    med = make_medicine(owner, redistribution_status="available")
    request = transfer_service.request_transfer(db, requester, med.id)

    data = transfer_service.transfer_as_dict(request)

    assert data["medicine"]["name"] == "Amoxicillin"
    assert data["owner"]["id"] == owner.id
    assert data["requester"]["username"] == "Clinic B"


@pytest.fixture
def two_sessions(tmp_path):
    """Two sessions on separate connections to one SQLite file, like two API workers."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'medicycle.db'}",
        connect_args={"check_same_thread": False},
        poolclass=NullPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    first, second = factory(), factory()
    yield first, second
    first.close()
    second.close()
    engine.dispose()


def _seed_listing(session):
    owner = User(username="City Pharmacy", email="city@example.com", hashed_password="x", role="pharmacy")
    clinic = User(username="Clinic B", email="clinicb@example.com", hashed_password="x", role="pharmacy")
    other = User(username="Pharmacy C", email="pharmc@example.com", hashed_password="x", role="pharmacy")
    session.add_all([owner, clinic, other])
    session.flush()
    med = Medicine(
        owner_id=owner.id,
        name="Amoxicillin",
        batch_number="B-101",
        expiry_date=date.today() + timedelta(days=45),
        quantity=10,
        redistribution_status="available",
    )
    session.add(med)
    session.commit()
    return owner.id, clinic.id, other.id, med.id


def test_concurrent_requests_claim_batch_once(two_sessions):
    first, second = two_sessions
    owner_id, clinic_id, other_id, med_id = _seed_listing(first)
    clinic = first.get(User, clinic_id)
    other = second.get(User, other_id)

    # First worker has already read the batch as available
    stale = first.get(Medicine, med_id)
    assert stale.redistribution_status == "available"

    transfer_service.request_transfer(second, other, med_id)

    with pytest.raises(InvalidStateError):
        transfer_service.request_transfer(first, clinic, med_id)

    second.expire_all()
    pending = second.query(TransferRequest).filter(TransferRequest.status == "pending").all()
    assert [r.to_user_id for r in pending] == [other_id]
    assert second.get(Medicine, med_id).redistribution_status == "requested"


def test_concurrent_responses_apply_once(two_sessions):
    first, second = two_sessions
    owner_id, clinic_id, _, med_id = _seed_listing(first)
    clinic = first.get(User, clinic_id)
    request_id = transfer_service.request_transfer(first, clinic, med_id).id

    owner_a = first.get(User, owner_id)
    owner_b = second.get(User, owner_id)
    # First worker holds the request as pending while the second accepts it
    assert first.get(TransferRequest, request_id).status == "pending"
    transfer_service.respond(second, owner_b, request_id, TransferAction.ACCEPT)

    with pytest.raises(InvalidStateError, match="already accepted"):
        transfer_service.respond(first, owner_a, request_id, TransferAction.REJECT)

    second.expire_all()
    med = second.get(Medicine, med_id)
    assert med.owner_id == clinic_id
    assert med.redistribution_status == RedistributionStatus.NONE.value
    assert second.get(TransferRequest, request_id).status == TransferStatus.ACCEPTED.value


def test_expired_listing_is_hidden_and_cannot_be_requested(db, parties, make_medicine):
    owner, requester = parties
    expired = make_medicine(owner, days=-1, redistribution_status="available")

    assert transfer_service.market(db, requester) == []
    with pytest.raises(InvalidStateError):
        transfer_service.request_transfer(db, requester, expired.id)
    db.refresh(expired)
    assert expired.redistribution_status == RedistributionStatus.AVAILABLE.value
    assert db.query(TransferRequest).count() == 0


def test_inactive_listing_is_hidden_and_cannot_be_requested(db, parties, make_medicine):
    owner, requester = parties
    sold = make_medicine(owner, redistribution_status="available")
    sold.status = MedicineStatus.SOLD.value
    db.commit()

    assert transfer_service.market(db, requester) == []
    with pytest.raises(InvalidStateError):
        transfer_service.request_transfer(db, requester, sold.id)
    assert db.query(TransferRequest).count() == 0


def test_listing_stays_requestable_on_its_expiry_day(db, parties, make_medicine):
    owner, requester = parties
    med = make_medicine(owner, days=0, redistribution_status="available")

    assert [i["id"] for i in transfer_service.market(db, requester)] == [med.id]
    assert transfer_service.request_transfer(db, requester, med.id).status == "pending"
