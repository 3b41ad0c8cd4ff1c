import pytest
from datetime import timedelta
from httpx import AsyncClient
from app.utils.time_utils import utc_now

class Tokens:
    CREATOR_TOKEN = "creator-token"
    OTHER_CREATOR_TOKEN = "other-creator-token"
    STUDENT_TOKEN = "student-token"
    STUDENT_2_TOKEN = "student-2-token"

QUIZ_PAYLOAD = {
    "title": "Python Basics",
    "description": "Warm-up quiz",
    "duration": 10,
    "questions": [
        {"text": "What is 2+2?", "options": ["3", "4"], "correctAnswer": "4", "marks": 2, "negativeMarks": 1},
        {"text": "Is Python typed?", "options": ["Dynamically", "Not at all"], "correctAnswer": "Dynamically",
         "marks": 3},
    ],
}

class TestQuizIntegration:
    """Integration tests for quiz operations"""

    @pytest.mark.asyncio
    async def test_create_quiz_flow(self, client: AsyncClient, auth_headers):
        response = await client.post("/quizzes", json=QUIZ_PAYLOAD, headers=auth_headers(Tokens.CREATOR_TOKEN))

        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "Python Basics"
        assert data["totalMarks"] == 5
        assert data["quizId"]

    @pytest.mark.asyncio
    async def test_participant_cannot_create(self, client: AsyncClient, auth_headers):
        response = await client.post("/quizzes", json=QUIZ_PAYLOAD, headers=auth_headers(Tokens.STUDENT_TOKEN))

        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "Only creators can create quizzes"}

    @pytest.mark.asyncio
    async def test_invalid_question_rejected(self, client: AsyncClient, auth_headers):
        payload = {**QUIZ_PAYLOAD, "questions": [
            {"text": "Pick one", "options": ["a", "b"], "correctAnswer": "c"},
        ]}
        response = await client.post("/quizzes", json=payload, headers=auth_headers(Tokens.CREATOR_TOKEN))

        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_publish_then_gate(self, client: AsyncClient, auth_headers, make_quiz, channel):
        quiz = make_quiz()
        start = utc_now() + timedelta(minutes=30)

        publish = await client.post(f"/quizzes/{quiz.id}/publish", json={"startTime": start.isoformat()},
                                    headers=auth_headers(Tokens.CREATOR_TOKEN))
        assert publish.status_code == 200
        access_code = publish.json()["accessCode"]
        assert len(access_code) == 6

        countdown = await client.get(f"/quizzes/{quiz.id}", params={"accessCode": access_code},
                                     headers=auth_headers(Tokens.STUDENT_TOKEN))
        assert countdown.status_code == 200
        body = countdown.json()
        assert body["view"] == "countdown"
        assert 0 < body["startsInSeconds"] <= 1800
        assert "questions" not in body

        creator_view = await client.get(f"/quizzes/{quiz.id}", headers=auth_headers(Tokens.CREATOR_TOKEN))
        assert creator_view.json()["view"] == "creator"
        assert creator_view.json()["accessCode"] == access_code
        assert channel.published == []

    @pytest.mark.asyncio
    async def test_open_quiz_needs_code(self, client: AsyncClient, auth_headers, open_quiz):
        headers = auth_headers(Tokens.STUDENT_TOKEN)

        missing = await client.get(f"/quizzes/{open_quiz.id}", headers=headers)
        assert missing.status_code == 403
        assert missing.json() == {"success": False, "message": "Invalid access code"}

        gated = await client.get(f"/quizzes/{open_quiz.id}", params={"accessCode": "123456"}, headers=headers)
        assert gated.status_code == 200
        body = gated.json()
        assert body["view"] == "participant"
        assert len(body["questions"]) == 2
        assert all("correctAnswer" not in q for q in body["questions"])

    @pytest.mark.asyncio
    async def test_publish_by_other_creator(self, client: AsyncClient, auth_headers, make_quiz):
        quiz = make_quiz()
        response = await client.post(f"/quizzes/{quiz.id}/publish", json={"startTime": utc_now().isoformat()},
                                     headers=auth_headers(Tokens.OTHER_CREATOR_TOKEN))

        assert response.status_code == 403
        assert response.json()["message"] == "You are not authorized to publish this quiz"

    @pytest.mark.asyncio
    async def test_publish_invalid_start(self, client: AsyncClient, auth_headers, make_quiz):
        quiz = make_quiz()
        response = await client.post(f"/quizzes/{quiz.id}/publish", json={"startTime": "soon"},
                                     headers=auth_headers(Tokens.CREATOR_TOKEN))

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invalid start time"}

    @pytest.mark.asyncio
    async def test_delete_quiz(self, client: AsyncClient, auth_headers, make_quiz):
        quiz = make_quiz()
        response = await client.delete(f"/quizzes/{quiz.id}", headers=auth_headers(Tokens.CREATOR_TOKEN))
        assert response.status_code == 200
        assert response.json()["success"] is True

        gone = await client.get(f"/quizzes/{quiz.id}", headers=auth_headers(Tokens.CREATOR_TOKEN))
        assert gone.status_code == 404

    @pytest.mark.asyncio
    async def test_creator_lists_own_quizzes(self, client: AsyncClient, auth_headers, open_quiz, make_quiz):
        make_quiz(creator_id="creator-2", title="Not mine")

        response = await client.get("/quizzes", headers=auth_headers(Tokens.CREATOR_TOKEN))
        assert response.status_code == 200
        listed = response.json()
        assert [q["id"] for q in listed] == [open_quiz.id]
        assert listed[0]["view"] == "creator"
        assert listed[0]["accessCode"] == "123456"
        assert listed[0]["questions"][0]["correctAnswer"] == "4"

    @pytest.mark.asyncio
    async def test_participant_lists_catalogue(self, client: AsyncClient, auth_headers, open_quiz, make_quiz):
        other = make_quiz(creator_id="creator-2", title="Another")

        response = await client.get("/quizzes", headers=auth_headers(Tokens.STUDENT_TOKEN))
        assert response.status_code == 200
        listed = response.json()
        assert sorted(q["id"] for q in listed) == sorted([open_quiz.id, other.id])
        for quiz in listed:
            assert quiz["view"] == "summary"
            assert quiz["questionCount"] == 2
            assert "questions" not in quiz
            assert "accessCode" not in quiz
            assert "correctAnswer" not in str(quiz)

class TestSubmissionIntegration:
    """Integration tests for submissions and leaderboards"""

    @pytest.mark.asyncio
    async def test_submit_and_rank(self, client: AsyncClient, auth_headers, open_quiz):
        questions = open_quiz.questions
        started_at = (utc_now() - timedelta(seconds=30)).isoformat()

        ada = await client.post("/submissions", headers=auth_headers(Tokens.STUDENT_TOKEN), json={
            "quizId": open_quiz.id,
            "startedAt": started_at,
            "answers": [{"questionId": questions[0].id, "selectedOption": "4"},
                        {"questionId": questions[1].id, "selectedOption": "London"}],
        })
        assert ada.status_code == 201
        assert ada.json()["score"] == 1
        assert ada.json()["answers"][1]["marksAwarded"] == -1

        grace = await client.post("/submissions", headers=auth_headers(Tokens.STUDENT_2_TOKEN), json={
            "quizId": open_quiz.id,
            "startedAt": started_at,
            "answers": [{"questionId": questions[0].id, "selectedOption": "4"},
                        {"questionId": questions[1].id, "selectedOption": "Paris"}],
        })
        assert grace.json()["score"] == 4

        board = await client.get(f"/leaderboards/{open_quiz.id}", headers=auth_headers(Tokens.STUDENT_TOKEN))
        entries = board.json()["entries"]
        assert [(e["participantName"], e["rank"]) for e in entries] == [("Grace", 1), ("Ada", 2)]

        mine = await client.get(f"/submissions/{open_quiz.id}/mine", headers=auth_headers(Tokens.STUDENT_TOKEN))
        assert mine.json()["score"] == 1

        history = await client.get("/submissions/history", headers=auth_headers(Tokens.STUDENT_TOKEN))
        assert [item["quizTitle"] for item in history.json()] == ["Test Quiz"]

        everyone = await client.get(f"/submissions/{open_quiz.id}/all", headers=auth_headers(Tokens.CREATOR_TOKEN))
        assert len(everyone.json()) == 2

    @pytest.mark.asyncio
    async def test_duplicate_submission(self, client: AsyncClient, auth_headers, open_quiz):
        body = {"quizId": open_quiz.id, "startedAt": utc_now().isoformat(), "answers": []}
        headers = auth_headers(Tokens.STUDENT_TOKEN)

        assert (await client.post("/submissions", json=body, headers=headers)).status_code == 201
        second = await client.post("/submissions", json=body, headers=headers)
        assert second.status_code == 409
        assert second.json() == {"success": False, "message": "You have already submitted this quiz"}

    @pytest.mark.asyncio
    async def test_submission_without_start_time(self, client: AsyncClient, auth_headers, open_quiz):
        response = await client.post("/submissions", headers=auth_headers(Tokens.STUDENT_TOKEN),
                                     json={"quizId": open_quiz.id, "answers": []})
        assert response.status_code == 400
        assert response.json()["message"] == "Quiz start time is required"

    @pytest.mark.asyncio
    async def test_leaderboard_reset(self, client: AsyncClient, auth_headers, open_quiz):
        await client.post("/submissions", headers=auth_headers(Tokens.STUDENT_TOKEN),
                          json={"quizId": open_quiz.id, "startedAt": utc_now().isoformat(), "answers": []})

        denied = await client.delete(f"/leaderboards/{open_quiz.id}", headers=auth_headers(Tokens.STUDENT_TOKEN))
        assert denied.status_code == 403
        assert denied.json()["message"] == "You are not authorized to reset leaderboard"

        reset = await client.delete(f"/leaderboards/{open_quiz.id}", headers=auth_headers(Tokens.CREATOR_TOKEN))
        assert reset.status_code == 200

        board = await client.get(f"/leaderboards/{open_quiz.id}", headers=auth_headers(Tokens.STUDENT_TOKEN))
        assert board.json()["entries"] == []

        standings = await client.get(f"/leaderboards/{open_quiz.id}/standings",
                                     headers=auth_headers(Tokens.CREATOR_TOKEN))
        assert len(standings.json()["entries"]) == 1

    @pytest.mark.asyncio
    async def test_missing_leaderboard(self, client: AsyncClient, auth_headers, open_quiz):
        response = await client.get(f"/leaderboards/{open_quiz.id}", headers=auth_headers(Tokens.STUDENT_TOKEN))
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Leaderboard not found"}

class TestTrialIntegration:
    """Instant trial over HTTP"""

    @pytest.mark.asyncio
    async def test_anonymous_trial(self, client: AsyncClient):
        started = await client.get("/trial/start", params={"numberOfQuestions": 20})
        assert started.status_code == 200
        body = started.json()
        assert len(body["quiz"]) == 5
        assert all(set(q) == {"prompt", "options"} for q in body["quiz"])

        result = await client.post("/trial/submit", json={"sessionId": body["sessionId"],
                                                          "answers": ["right-0", "right-1", None]})
        assert result.status_code == 200
        assert result.json() == {"score": 2, "total": 5}

    @pytest.mark.asyncio
    async def test_authenticated_trial(self, client: AsyncClient, auth_headers):
        headers = auth_headers(Tokens.STUDENT_TOKEN)
        started = await client.get("/trial/start", params={"numberOfQuestions": 3}, headers=headers)
        body = started.json()
        assert len(body["quiz"]) == 3

        result = await client.post("/trial/submit", headers=headers,
                                   json={"sessionId": body["sessionId"], "answers": ["right-0"]})
        data = result.json()
        assert (data["score"], data["total"]) == (1, 3)
        assert [f["isCorrect"] for f in data["feedback"]] == [True, False, False]

    @pytest.mark.asyncio
    async def test_expired_session(self, client: AsyncClient):
        response = await client.post("/trial/submit", json={"sessionId": "gone", "answers": []})
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Session expired or invalid"}

    @pytest.mark.asyncio
    async def test_upstream_failure_is_hidden(self, client: AsyncClient, trivia_source):
        from app.exceptions import UpstreamError
        trivia_source.fetch_questions.side_effect = UpstreamError("Failed to fetch trivia questions")

        response = await client.get("/trial/start")
        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Something went wrong, please try again later"}

class TestRealtimeIntegration:
    @pytest.mark.asyncio
    async def test_health_and_stats(self, client: AsyncClient):
        health = await client.get("/realtime/health")
        assert health.status_code == 200
        assert "active_connections" in health.json()

        stats = await client.get("/realtime/stats")
        assert "total_connections" in stats.json()
