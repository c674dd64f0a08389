"""Unit tests for portal/store.py."""

from portal.models import Application, ApplicationStatus


class TestApplicationStore:
    def test_create_sets_defaults(self, application_store) -> None:
        app_id = application_store.create_application(Application(user_id=1, program="web-development"))
        stored = application_store.get_application(app_id)
        assert stored.status == ApplicationStatus.pending.value
        assert stored.experience == "beginner"
        assert stored.notes == ""
        assert stored.submitted_at

    def test_active_application_blocks_same_program_only(self, application_store) -> None:
        application_store.create_application(Application(user_id=1, program="web-development"))
        assert application_store.has_active_application(1, "web-development")
        assert not application_store.has_active_application(1, "python-development")
        assert not application_store.has_active_application(2, "web-development")

    def test_closed_application_does_not_block(self, application_store) -> None:
        for status in (ApplicationStatus.rejected, ApplicationStatus.completed):
            application_store.create_application(
                Application(user_id=3, program="java-development", status=status.value)
            )
        assert not application_store.has_active_application(3, "java-development")

    def test_list_for_user_newest_first(self, application_store) -> None:
        first = application_store.create_application(Application(user_id=4, program="web-development"))
        second = application_store.create_application(Application(user_id=4, program="java-development"))
        application_store.create_application(Application(user_id=5, program="web-development"))
        assert [a.id for a in application_store.list_for_user(4)] == [second, first]

    def test_delete_for_user(self, application_store) -> None:
        application_store.create_application(Application(user_id=6, program="web-development"))
        application_store.create_application(Application(user_id=6, program="java-development"))
        application_store.create_application(Application(user_id=7, program="web-development"))
        assert application_store.delete_for_user(6) == 2
        assert application_store.list_for_user(6) == []
        assert len(application_store.list_for_user(7)) == 1
        assert application_store.get_application(9999) is None

    def test_update_status_replaces_notes(self, application_store) -> None:
        app_id = application_store.create_application(
            Application(user_id=8, program="web-development", notes="from applicant")
        )
        before = application_store.get_application(app_id)
        assert application_store.update_status(app_id, ApplicationStatus.approved.value, "welcome") is True
        after = application_store.get_application(app_id)
        assert after.status == "approved"
        assert after.notes == "welcome"
        assert after.updated_at >= before.updated_at
        assert after.submitted_at == before.submitted_at
        assert application_store.update_status(9999, "approved") is False

    def test_list_all_and_counts(self, application_store) -> None:
        first = application_store.create_application(Application(user_id=10, program="web-development"))
        second = application_store.create_application(Application(user_id=11, program="web-development"))
        third = application_store.create_application(
            Application(user_id=11, program="java-development", status=ApplicationStatus.rejected.value)
        )
        assert [a.id for a in application_store.list_all()] == [third, second, first]
        assert application_store.count_by("program") == {"web-development": 2, "java-development": 1}
        assert application_store.count_by("status") == {"pending": 2, "rejected": 1}
