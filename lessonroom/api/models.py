"""Request payloads accepted by the HTTP routes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

LessonIdentifier = StrictStr | StrictInt
ClassPeriod = StrictStr | StrictInt


class RequestModel(BaseModel):
  """Base payload accepting either camelCase aliases or field names."""

  model_config = ConfigDict(populate_by_name=True)


class UnitPayload(RequestModel):
  name: StrictStr | None = None
  value: StrictStr | None = None


class RegisterTeacherRequest(RequestModel):
  name: StrictStr = Field(min_length=1, max_length=320)


class CreateUnitRequest(RequestModel):
  teacher: StrictStr = Field(min_length=1)
  unit: UnitPayload


class AddLessonToUnitRequest(RequestModel):
  teacher: StrictStr = Field(min_length=1)
  lesson_id: LessonIdentifier = Field(alias="lessonId")


class AssignUnitRequest(RequestModel):
  """Assign one unit to a class period of the same teacher."""

  teacher: StrictStr = Field(min_length=1)
  unit_value: StrictStr = Field(alias="unitValue", min_length=1)
  class_period: ClassPeriod = Field(alias="classPeriod")


class SaveLessonRequest(RequestModel):
  """New lesson payload; missing pieces are reported by name with a 400."""

  lesson: dict[str, Any] | None = None
  unit: UnitPayload | None = None
  teacher: StrictStr | None = None


class UpdateLessonRequest(RequestModel):
  """Partial lesson update. Only keys present in `lesson` are written."""

  lesson: dict[str, Any] = Field(default_factory=dict)
  unit: UnitPayload | None = None
  teacher: StrictStr | None = None
  lesson_id: LessonIdentifier | None = Field(default=None, alias="lessonId")


class LessonLookupRequest(RequestModel):
  teacher: StrictStr | None = None
  unit_name: StrictStr | None = Field(default=None, alias="unitName")
  lesson_title: StrictStr | None = Field(default=None, alias="lessonTitle")


class ResolveLessonsRequest(RequestModel):
  lesson_ids: list[Any] = Field(alias="lessonIds")
  student_name: StrictStr | None = Field(default=None, alias="studentName")


class FlattenLessonsRequest(RequestModel):
  teacher: StrictStr | None = None
  clean: bool = False


class RegisterStudentRequest(RequestModel):
  member_name: StrictStr = Field(alias="memberName", min_length=1)
  teacher: StrictStr = Field(min_length=1)
  class_period: ClassPeriod = Field(alias="classPeriod")


class StudentLessonRequest(RequestModel):
  student_name: StrictStr = Field(alias="studentName", min_length=1)
  lesson_id: LessonIdentifier = Field(alias="lessonId")


class LessonTimeRequest(StudentLessonRequest):
  elapsed_time: StrictInt = Field(alias="elapsedTime", ge=0)


class ConditionStateRequest(StudentLessonRequest):
  condition_state: dict[str, Any] = Field(alias="conditionState")


class LessonCompletionRequest(StudentLessonRequest):
  snapshot: dict[str, Any] = Field(default_factory=dict)
  completed_conditions: list[Any] = Field(default_factory=list, alias="completedConditions")
