import pytest
from sqlalchemy.exc import IntegrityError

from abby_api.domain.certifications.evaluator import (
    DEFAULT_CERTIFICATIONS,
    certification_progress,
    ensure_default_certifications,
    evaluate_certifications,
)
from abby_api.models import Certification, ClientProfile, UserCertification


def award_names(db, user_id):
    return {
        cert.name
        for cert in db.query(Certification)
        .join(UserCertification, UserCertification.certification_id == Certification.id)
        .filter(UserCertification.user_id == user_id)
    }


def test_default_certifications_are_provisioned_once(db):
    created = ensure_default_certifications(db)
    db.commit()
    assert {c.name for c in created} == {d["name"] for d in DEFAULT_CERTIFICATIONS}

    assert ensure_default_certifications(db) == []
    assert db.query(Certification).count() == 3


def test_evaluator_provisions_catalogue_when_empty(db, client_user):
    evaluate_certifications(db, client_user.id, 0, 0, 0)
    assert db.query(Certification).count() == 3


def test_award_requires_all_three_thresholds(db, client_user):
    ensure_default_certifications(db)

    # Anxiety Management Basics: 2 sessions, 2 quizzes, 80%
    assert evaluate_certifications(db, client_user.id, 1, 2, 95) == []
    assert evaluate_certifications(db, client_user.id, 2, 1, 95) == []
    assert evaluate_certifications(db, client_user.id, 2, 2, 79) == []

    awarded = evaluate_certifications(db, client_user.id, 2, 2, 80)
    assert [a.certification.name for a in awarded] == ["Anxiety Management Basics"]
    award = awarded[0]
    assert award.status == "completed"
    assert award.progress_percentage == 100
    assert award.earned_at is not None


def test_latest_score_gates_higher_certifications(db, client_user):
    ensure_default_certifications(db)

    # Emotional Intelligence Explorer needs 85%
    evaluate_certifications(db, client_user.id, 3, 3, 82)
    assert award_names(db, client_user.id) == {"Anxiety Management Basics"}

    evaluate_certifications(db, client_user.id, 3, 3, 90)
    assert award_names(db, client_user.id) == {"Anxiety Management Basics", "Emotional Intelligence Explorer"}


def test_certification_is_never_awarded_twice(db, client_user):
    ensure_default_certifications(db)
    first = evaluate_certifications(db, client_user.id, 4, 4, 100)
    assert len(first) == 3

    assert evaluate_certifications(db, client_user.id, 5, 5, 100) == []
    assert db.query(UserCertification).filter(UserCertification.user_id == client_user.id).count() == 3


def test_unique_award_constraint(db, client_user):
    cert = ensure_default_certifications(db)[0]
    db.add(UserCertification(user_id=client_user.id, certification_id=cert.id))
    db.flush()
    db.add(UserCertification(user_id=client_user.id, certification_id=cert.id))
    with pytest.raises(IntegrityError):
        db.flush()
    db.rollback()


def test_certification_progress():
    cert = Certification(name="x", required_sessions=4, required_quizzes=2, minimum_score=80)
    profile = ClientProfile(total_sessions_completed=1, total_quizzes_completed=1)
    # (25 + 50) / 2
    assert certification_progress(profile, cert) == 38

    profile = ClientProfile(total_sessions_completed=10, total_quizzes_completed=10)
    assert certification_progress(profile, cert) == 100
    assert certification_progress(None, cert) == 0
