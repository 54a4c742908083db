from unittest.mock import patch

import requests

from event_portal.services.session_store import AuthState, SessionStore
from tests.base import BaseTestCase


def event_form(**overrides):
    data = {
        "title": "Hack Night",
        "description": "Build something fun with friends overnight.",
        "location": "Engineering 189",
        "date": "2030-06-01",
        "start_time": "18:00",
        "end_time": "23:00",
        "category": "Workshops & Training",
        "max_attendees": "",
    }
    data.update(overrides)
    return data


class EventListTests(BaseTestCase):
    def test_anonymous_user_sees_public_list_without_authenticated_calls(self):
        r = self.client.get("/events/")
        self.assertEqual(r.status_code, 200)
        self.assertIn(b"Spring Career Fair", r.data)
        self.assertIn(b"Log in", r.data)

        paths = {path for _method, path in self.backend.calls}
        self.assertEqual(paths, {"/api/events"})

    def test_home_redirects_to_events(self):
        r = self.client.get("/")
        self.assertEqual(r.status_code, 302)
        self.assertTrue(r.headers["Location"].endswith("/events/"))

    def test_filter_by_category_and_search(self):
        self.backend.add_event(self.organizer, title="Yoga on the Lawn", category="Health & Wellness")

        r = self.client.get("/events/?category=Health+%26+Wellness")
        self.assertIn(b"Yoga on the Lawn", r.data)
        self.assertNotIn(b"Spring Career Fair", r.data)

        r = self.client.get("/events/?q=career")
        self.assertIn(b"Spring Career Fair", r.data)
        self.assertNotIn(b"Yoga on the Lawn", r.data)

        r = self.client.get("/events/?q=nothing-matches")
        self.assertIn(b"No events found", r.data)

    def test_backend_failure_renders_error_panel(self):
        self.backend.fail("GET", r"/api/events", status=500, body={"message": "Database unavailable"})
        r = self.client.get("/events/")
        self.assertEqual(r.status_code, 200)
        self.assertIn(b"Error Loading Events", r.data)
        self.assertIn(b"Database unavailable", r.data)


class EventDetailTests(BaseTestCase):
    def test_missing_event_is_not_found_page(self):
        r = self.client.get("/events/999")
        self.assertEqual(r.status_code, 404)
        self.assertIn(b"Event not found.", r.data)

    def test_backend_error_on_detail_redirects_with_message(self):
        self.backend.fail("GET", r"/api/events/\d+", status=500, body=None)
        r = self.client.get(f"/events/{self.event_id}", follow_redirects=True)
        self.assertIn(b"Failed to load event details.", r.data)

    def test_anonymous_detail_offers_login(self):
        r = self.client.get(f"/events/{self.event_id}")
        self.assertEqual(r.status_code, 200)
        self.assertIn(b"Log in to register", r.data)
        self.assertFalse(self.backend.called("GET", f"/api/events/{self.event_id}/registrations/status"))

    def test_participant_registers_and_deregisters_for_event_5(self):
        self.backend.add_event(self.organizer, event_id=5, title="Robotics Demo Day")
        self.login_participant()

        r = self.client.get("/events/5")
        self.assertIn(b"Register for Event", r.data)
        self.assertNotIn(b'class="badge badge-registered"', r.data)

        r = self.client.post("/events/5/register", follow_redirects=True)
        self.assertEqual(r.status_code, 200)
        self.assertIn(b"Successfully registered for event.", r.data)
        self.assertIn(b'class="badge badge-registered"', r.data)
        self.assertIn(b"Cancel Registration", r.data)
        self.assertEqual(self.backend.registration_count(5), 1)

        r = self.client.post("/events/5/deregister", follow_redirects=True)
        self.assertNotIn(b'class="badge badge-registered"', r.data)
        self.assertIn(b"Register for Event", r.data)
        self.assertEqual(self.backend.registration_count(5), 0)

    def test_registered_badge_comes_from_the_server(self):
        self.login_participant()
        self.backend.calls.clear()

        self.client.post(f"/events/{self.event_id}/register", follow_redirects=True)

        status_path = f"/api/events/{self.event_id}/registrations/status"
        register_index = self.backend.calls.index(("POST", f"/api/events/{self.event_id}/register"))
        self.assertIn(("GET", status_path), self.backend.calls[register_index + 1:])

    def test_failed_registration_keeps_badge_off(self):
        self.login_participant()
        self.backend.fail("POST", r"/api/events/\d+/register", exc=requests.ConnectionError("down"))

        r = self.client.post(f"/events/{self.event_id}/register", follow_redirects=True)
        self.assertIn(b"Registration failed: Network error", r.data)
        self.assertNotIn(b'class="badge badge-registered"', r.data)

    def test_duplicate_registration_message_is_shown_verbatim(self):
        self.login_participant()
        self.client.post(f"/events/{self.event_id}/register")

        r = self.client.post(f"/events/{self.event_id}/register", follow_redirects=True)
        self.assertIn(b"User is already registered for this event.", r.data)
        self.assertEqual(self.backend.registration_count(self.event_id), 1)

    def test_anonymous_register_redirects_to_login(self):
        r = self.client.post(f"/events/{self.event_id}/register")
        self.assertEqual(r.status_code, 302)
        self.assertIn("/auth/login", r.headers["Location"])
        self.assertFalse(self.backend.called("POST", f"/api/events/{self.event_id}/register"))

    def test_owner_sees_registrants(self):
        self.login_participant()
        self.client.post(f"/events/{self.event_id}/register")
        self.logout()

        self.login_organizer()
        r = self.client.get(f"/events/{self.event_id}")
        self.assertIn(b"You are the organizer", r.data)
        self.assertIn(b"alice", r.data)

        r = self.client.get(f"/events/{self.event_id}/registrations")
        self.assertEqual(r.status_code, 200)
        self.assertIn(b"alice@sjsu.edu", r.data)


class OrganizerTests(BaseTestCase):
    def test_participant_cannot_open_create_page(self):
        self.login_participant()
        r = self.client.get("/events/new", follow_redirects=True)
        self.assertIn(b"Only organizers can create events.", r.data)

    def test_anonymous_create_page_redirects_to_login(self):
        r = self.client.get("/events/new")
        self.assertEqual(r.status_code, 302)
        self.assertIn("/auth/login", r.headers["Location"])

    def test_create_event_success(self):
        self.login_organizer()
        r = self.client.post("/events/new", data=event_form())
        self.assertEqual(r.status_code, 302)

        created = [e for e in self.backend.events.values() if e["title"] == "Hack Night"]
        self.assertEqual(len(created), 1)
        self.assertEqual(created[0]["startTime"], "2030-06-01T18:00:00")
        self.assertTrue(r.headers["Location"].endswith(f"/events/{created[0]['eventId']}"))

    def test_end_before_start_is_blocked_before_network(self):
        self.login_organizer()
        self.backend.calls.clear()

        r = self.client.post("/events/new", data=event_form(start_time="18:00", end_time="17:00"))

        self.assertEqual(r.status_code, 400)
        self.assertIn(b'data-field="end_time">End time must be after start time', r.data)
        self.assertFalse(self.backend.called("POST", "/api/events"))

    def test_short_fields_are_rejected(self):
        self.login_organizer()
        r = self.client.post("/events/new", data=event_form(title="Hi", description="too short"))
        self.assertEqual(r.status_code, 400)
        self.assertIn(b"Title must be at least 5 characters", r.data)
        self.assertIn(b"Description must be at least 20 characters", r.data)

    def test_edit_event(self):
        self.login_organizer()
        r = self.client.get(f"/events/{self.event_id}/edit")
        self.assertEqual(r.status_code, 200)
        self.assertIn(b"Spring Career Fair", r.data)

        r = self.client.post(
            f"/events/{self.event_id}/edit",
            data=event_form(title="Fall Career Fair", category="Career & Networking"),
        )
        self.assertEqual(r.status_code, 302)
        self.assertEqual(self.backend.events[self.event_id]["title"], "Fall Career Fair")

    def test_other_organizer_cannot_edit_or_rename(self):
        self.backend.add_user("oscar", "oscar@sjsu.edu", "pass123", roles=("ROLE_USER", "ROLE_ORGANIZER"))
        self.client.post("/auth/login", data={"identifier": "oscar", "password": "pass123"})

        r = self.client.get(f"/events/{self.event_id}/edit", follow_redirects=True)
        self.assertIn(b"You can only manage events you organize.", r.data)

        self.client.post(f"/events/{self.event_id}/title", data={"title": "Hijacked title"})
        self.assertEqual(self.backend.events[self.event_id]["title"], "Spring Career Fair")
        self.assertFalse(self.backend.called("PUT", f"/api/events/{self.event_id}/title"))

    def test_owner_renames_event(self):
        self.login_organizer()
        r = self.client.post(f"/events/{self.event_id}/title", data={"title": "Career Fair 2030"}, follow_redirects=True)
        self.assertIn(b"Title updated.", r.data)
        self.assertEqual(self.backend.events[self.event_id]["title"], "Career Fair 2030")

    def test_owner_deletes_event(self):
        self.login_organizer()
        r = self.client.post(f"/events/{self.event_id}/delete", follow_redirects=True)
        self.assertEqual(r.status_code, 200)
        self.assertIn(b"Event deleted successfully.", r.data)
        self.assertNotIn(self.event_id, self.backend.events)

    def test_server_rejection_on_create_is_shown(self):
        self.login_organizer()
        self.backend.fail("POST", r"/api/events", status=400, body={"message": "Start time must be in the future"})
        r = self.client.post("/events/new", data=event_form())
        self.assertEqual(r.status_code, 400)
        self.assertIn(b"Start time must be in the future", r.data)

    def test_past_date_is_blocked_before_network(self):
        self.login_organizer()
        self.backend.calls.clear()

        r = self.client.post("/events/new", data=event_form(date="2001-01-01"))

        self.assertEqual(r.status_code, 400)
        self.assertIn(b'data-field="date">Event date cannot be in the past', r.data)
        self.assertFalse(self.backend.called("POST", "/api/events"))

    def test_edit_keeps_past_dates_editable(self):
        self.login_organizer()
        r = self.client.post(f"/events/{self.event_id}/edit", data=event_form(date="2001-01-01"))
        self.assertEqual(r.status_code, 302)
        self.assertEqual(self.backend.events[self.event_id]["startTime"], "2001-01-01T18:00:00")

    def test_edit_can_remove_attendee_cap(self):
        capped = self.backend.add_event(self.organizer, title="Capped Workshop", max_attendees=30)
        self.login_organizer()

        r = self.client.post(f"/events/{capped}/edit", data=event_form(max_attendees=""))
        self.assertEqual(r.status_code, 302)
        self.assertIsNone(self.backend.events[capped]["maxAttendees"])


class LoadingPageTests(BaseTestCase):
    def test_busy_session_check_renders_loading_page(self):
        self.login_participant()

        def still_verifying(store):
            store.state = AuthState.VERIFYING
            return False

        with patch.object(SessionStore, "verify_session", autospec=True, side_effect=still_verifying):
            r = self.client.get("/profile/")

        self.assertEqual(r.status_code, 503)
        self.assertEqual(r.headers["Retry-After"], "1")
        self.assertNotIn("Location", r.headers)
        self.assertIn(b"Checking your session", r.data)
