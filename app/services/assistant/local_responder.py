"""Rule-based assistant responder.

Keyword intent detection answered from ``PLATFORM_KNOWLEDGE``.  Used when no
LLM provider is configured; no network, no side effects.
"""

from __future__ import annotations

from .knowledge_base import path_for_location, search_knowledge
from .types import AIRequest, AIResponse, PlatformContext, navigate_action

_GENERIC_SUGGESTIONS = ["Tell me more", "How do I do this?", "Where can I find this?"]


def detect_intent(query: str) -> str:
    query = query.lower()
    if "how do i" in query or "how to" in query or "how can i" in query:
        return "how_to"
    if "where" in query and ("find" in query or "menu" in query or "go" in query):
        return "navigation"
    if "schedule" in query and "training" in query:
        return "schedule_training"
    if "employee" in query or "participant" in query:
        return "find_employees"
    if "certificate" in query or "expir" in query or "code 95" in query:
        return "certificates"
    if "what is" in query or "what are" in query:
        return "general_info"
    return "generic"


class LocalResponder:
    name = "local"

    async def process_message(
        self,
        request: AIRequest,
        context: PlatformContext | None = None,
    ) -> AIResponse:
        query = request["message"].lower()
        handler = {
            "navigation": self._navigation,
            "how_to": self._how_to,
            "schedule_training": self._schedule_training,
            "find_employees": self._employees,
            "certificates": self._certificates,
            "general_info": self._general_info,
        }.get(detect_intent(query), self._generic)
        return handler(query)

    def _navigation(self, query: str) -> AIResponse:
        if "training" in query or "schedule" in query:
            return AIResponse(
                content=(
                    "You can find the Training Scheduler in the main navigation menu. It allows you "
                    "to create, edit, and manage training sessions."
                ),
                actions=[navigate_action("/scheduling", "Go to Training Scheduler")],
            )
        if "employee" in query or "participant" in query:
            return AIResponse(
                content=(
                    "The Participants menu is where you can manage all employee records, add new "
                    "employees, and view employee profiles."
                ),
                actions=[navigate_action("/participants", "Go to Participants")],
            )
        if "course" in query:
            return AIResponse(
                content=(
                    "You can manage courses in the Courses menu. Here you can create new courses, "
                    "edit existing ones, and configure Code 95 points."
                ),
                actions=[navigate_action("/courses", "Go to Courses")],
            )
        return AIResponse(
            content=(
                "I can help you navigate to different sections of the platform. The main areas are: "
                "Training Scheduler, Participants, Courses, Certificate Expiry, and Reports. "
                "What would you like to access?"
            )
        )

    def _how_to(self, query: str) -> AIResponse:
        knowledge = search_knowledge(query)
        if knowledge:
            result = knowledge[0]
            if result["type"] == "question":
                return AIResponse(
                    content=result["answer"],
                    suggestions=["Tell me more about this", "Show me where to go", "What else can I do?"],
                )
            if result["type"] == "feature":
                return AIResponse(
                    content=f"{result['description']}\n\n{result['guide']}",
                    actions=[
                        navigate_action(
                            path_for_location(result["location"]),
                            f"Go to {result['location']}",
                        )
                    ],
                )
        return AIResponse(
            content=(
                "I can help you with common tasks like scheduling trainings, managing employees, "
                "creating courses, and checking certificates. What specifically would you like to "
                "learn how to do?"
            )
        )

    def _schedule_training(self, query: str) -> AIResponse:
        return AIResponse(
            content=(
                "To schedule a training, I can guide you through the process:\n\n"
                "1. First, I'll take you to the Training Scheduler\n"
                "2. You can then create a new training\n"
                "3. Select the course and set the date/time\n"
                "4. Add participants\n\n"
                "Would you like me to take you to the Training Scheduler now?"
            ),
            actions=[navigate_action("/scheduling", "Go to Training Scheduler")],
            suggestions=["Yes, take me there", "Tell me more about the process", "What courses are available?"],
        )

    def _employees(self, query: str) -> AIResponse:
        return AIResponse(
            content=(
                "I can help you with employee management. You can:\n\n"
                "• View all employees in the Participants section\n"
                "• Add new employees\n"
                "• Edit employee information\n"
                "• Manage employee licenses and certificates\n\n"
                "What would you like to do with employee records?"
            ),
            actions=[navigate_action("/participants", "Go to Participants")],
        )

    def _certificates(self, query: str) -> AIResponse:
        return AIResponse(
            content=(
                "For certificate management, you can check expiring certificates, update certificate "
                "statuses, and generate compliance reports. The Certificate Expiry section shows you "
                "all certificates with their status and expiry dates."
            ),
            actions=[navigate_action("/certifications", "Go to Certificate Expiry")],
        )

    def _general_info(self, query: str) -> AIResponse:
        # Whole questions rarely match; fall back to the subject after "what is".
        candidates = [query]
        for marker in ("what is ", "what are "):
            if marker in query:
                candidates.append(query.split(marker, 1)[1].strip(" ?.!"))

        for candidate in filter(None, candidates):
            for result in search_knowledge(candidate):
                if result["type"] == "terminology":
                    return AIResponse(
                        content=f"{result['term']}: {result['definition']}",
                        suggestions=["Tell me more", "How do I use this?", "Where can I find this?"],
                    )
        return AIResponse(
            content=(
                "I can provide information about various aspects of the training management platform. "
                "What specifically would you like to know about?"
            )
        )

    def _generic(self, query: str) -> AIResponse:
        knowledge = search_knowledge(query)
        if knowledge:
            result = knowledge[0]
            content = (
                result.get("answer")
                or result.get("description")
                or result.get("definition")
                or "I found some information about that."
            )
            return AIResponse(content=content, suggestions=list(_GENERIC_SUGGESTIONS))
        return AIResponse(
            content=(
                "I'm here to help you with the training management platform. I can assist with:\n\n"
                "• Scheduling trainings\n"
                "• Managing employees\n"
                "• Creating courses\n"
                "• Checking certificates\n"
                "• Generating reports\n"
                "• Finding features and menus\n\n"
                "What would you like to do?"
            ),
            suggestions=["Schedule a training", "Add an employee", "Check certificates", "Find a feature"],
        )
