"""Tests for the feedback surface."""

from voxaid.feedback import Feedback, FeedbackKind


class TestFeedback:
    def test_show_records_and_notifies(self):
        feedback = Feedback()
        received = []
        feedback.subscribe(received.append)
        message = feedback.show("Listening...")
        assert received == [message]
        assert feedback.last.text == "Listening..."
        assert feedback.last.kind is FeedbackKind.STATUS

    def test_kinds(self):
        feedback = Feedback()
        feedback.interim("Hearing: scr")
        feedback.error("No button found matching: x")
        feedback.respond("Font size 110%")
        assert [m.kind for m in feedback.messages()] == [
            FeedbackKind.INTERIM,
            FeedbackKind.ERROR,
            FeedbackKind.RESPONSE,
        ]

    def test_history_is_bounded(self):
        feedback = Feedback(history=3)
        for i in range(5):
            feedback.show(str(i))
        assert feedback.texts() == ["2", "3", "4"]
        assert [m.text for m in feedback.messages(limit=2)] == ["3", "4"]

    def test_listener_error_is_contained(self):
        feedback = Feedback()

        def bad_listener(_):
            raise RuntimeError("display gone")

        feedback.subscribe(bad_listener)
        feedback.show("still works")
        assert feedback.last.text == "still works"

    def test_to_dict(self):
        message = Feedback().error("oops")
        data = message.to_dict()
        assert data["text"] == "oops"
        assert data["kind"] == "error"
        assert isinstance(data["timestamp"], float)

    def test_clear(self):
        feedback = Feedback()
        feedback.show("x")
        feedback.clear()
        assert feedback.last is None
