import pytest

from subscription_core.application.services.subject_registry import SubjectRegistry
from subscription_core.domain.errors import NotFoundError
from subscription_core.domain.models import Subject, SubjectRef


def test_resolves_registered_subject(subject_registry, accounts):
    subject = subject_registry.resolve(SubjectRef("account", "2"))

    assert subject is accounts["2"]
    assert isinstance(subject, Subject)
    assert subject.human_description_for_subscription() == "account Globex"


def test_unknown_type():
    with pytest.raises(NotFoundError, match="Subject type"):
        SubjectRegistry().resolve(SubjectRef("team", "1"))


def test_unknown_id(subject_registry):
    with pytest.raises(NotFoundError):
        subject_registry.resolve(SubjectRef("account", "404"))


def test_replacing_resolver_logs_warning(subject_registry, caplog):
    subject_registry.register("account", lambda entity_id: None)

    assert subject_registry.is_registered("account")
    assert "Replacing subject resolver" in caplog.text
