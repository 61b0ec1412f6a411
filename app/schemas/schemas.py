"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Annotated, Optional, List, Dict, Any
from datetime import datetime, timezone
from enum import Enum


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store every timestamp as naive UTC, the way pymongo hands them back."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ============================================================
# ENUMS
# ============================================================

class RoleName(str, Enum):
    admin = "admin"
    applicant = "applicant"
    oas_staff = "oas_staff"
    panelist = "panelist"
    nas_supervisor = "nas_supervisor"
    department_head = "department_head"


class ApplicationStatus(str, Enum):
    pending = "Pending"
    under_review = "Under Review"
    document_verification = "Document Verification"
    interview_scheduled = "Interview Scheduled"
    approved = "Approved"
    rejected = "Rejected"


class CivilStatus(str, Enum):
    single = "Single"
    married = "Married"
    widowed = "Widowed"
    separated = "Separated"


class DocumentSlot(str, Enum):
    student_picture = "student_picture"
    nbi_clearance = "nbi_clearance"
    grade_report = "grade_report"
    income_tax_return = "income_tax_return"
    good_moral_certificate = "good_moral_certificate"
    physical_checkup = "physical_checkup"
    certificates = "certificates"
    home_location_sketch = "home_location_sketch"


class DocumentStatus(str, Enum):
    uploaded = "uploaded"
    verified = "verified"
    rejected = "rejected"


class RiskLevel(str, Enum):
    low = "Low"
    medium = "Medium"
    high = "High"


class RecommendationDecision(str, Enum):
    recommended = "recommended"
    not_recommended = "not_recommended"


class NotificationType(str, Enum):
    general = "general"
    application_submitted = "application_submitted"
    application_form_verified = "application_form_verified"
    application_status = "application_status"
    documents_submitted = "documents_submitted"
    document_uploaded = "document_uploaded"
    documents_verified = "documents_verified"
    document_status = "document_status"
    interview_scheduled = "interview_scheduled"
    personality_test_available = "personality_test_available"
    personality_test_completed = "personality_test_completed"
    scholarship_approved = "scholarship_approved"
    scholarship_rejected = "scholarship_rejected"
    progress_update = "progress_update"
    status_change = "status_change"


class NotificationPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class ActivityType(str, Enum):
    application_submitted = "application_submitted"
    application_updated = "application_updated"
    document_uploaded = "document_uploaded"
    document_deleted = "document_deleted"
    document_verified = "document_verified"
    personality_test_started = "personality_test_started"
    personality_test_completed = "personality_test_completed"
    personality_test_stopped = "personality_test_stopped"
    status_changed = "status_changed"
    interview_scheduled = "interview_scheduled"
    application_viewed = "application_viewed"
    profile_updated = "profile_updated"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    id_number: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8)
    course_id: Optional[int] = None

class StaffRegisterRequest(RegisterRequest):
    role: RoleName
    department_id: Optional[int] = None

class LoginRequest(BaseModel):
    # Either e-mail or ID number
    identifier: str
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str

class UserResponse(BaseModel):
    user_id: int
    name: str
    id_number: str
    email: Optional[str] = None
    role: str
    permissions: List[str] = []
    course_id: Optional[int] = None
    department_id: Optional[int] = None
    is_active: bool
    verified: bool
    created_at: Optional[datetime] = None

class VerifyEmailRequest(BaseModel):
    code: str = Field(..., min_length=6, max_length=6)

class UpdateEmailRequest(BaseModel):
    email: EmailStr

class UserStatusUpdate(BaseModel):
    is_active: bool


# ============================================================
# APPLICATION FORM SCHEMAS
# ============================================================

class ParentInfo(BaseModel):
    first_name: str
    last_name: str
    age: int = Field(..., ge=0)
    occupation: str
    gross_annual_income: str
    contact_number: str

class Sibling(BaseModel):
    name: str
    age: int = Field(..., ge=0)

class FamilyBackground(BaseModel):
    father: ParentInfo
    mother: ParentInfo
    siblings: List[Sibling] = []

class SchoolRecord(BaseModel):
    name_and_address_of_school: str
    general_average: float = Field(..., ge=0, le=100)

class CollegeLevelRecord(BaseModel):
    year_level: int = Field(..., ge=1)
    first_semester_average_final_grade: float = Field(..., ge=0, le=100)
    second_semester_average_final_grade: float = Field(..., ge=0, le=100)

class Education(BaseModel):
    elementary: SchoolRecord
    secondary: SchoolRecord
    college_level: List[CollegeLevelRecord] = []

class OrganizationMembership(BaseModel):
    name_of_organization: str
    position: str

class Reference(BaseModel):
    name: str
    relationship_to_the_applicant: str
    contact_number: str

class ApplicationCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email_address: EmailStr
    type_of_scholarship: str
    name_of_scholarship_sponsor: str
    program_of_study_and_year: str
    remaining_units_including_this_term: int = Field(..., ge=0)
    remaining_terms_to_graduate: int = Field(..., ge=0)
    citizenship: str
    civil_status: CivilStatus
    annual_family_income: str
    residing_at: str
    permanent_residential_address: str
    contact_number: str
    family_background: FamilyBackground
    education: Education
    current_membership_in_organizations: List[OrganizationMembership] = []
    references: List[Reference] = []

class ApplicationUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email_address: Optional[EmailStr] = None
    type_of_scholarship: Optional[str] = None
    name_of_scholarship_sponsor: Optional[str] = None
    program_of_study_and_year: Optional[str] = None
    remaining_units_including_this_term: Optional[int] = Field(None, ge=0)
    remaining_terms_to_graduate: Optional[int] = Field(None, ge=0)
    citizenship: Optional[str] = None
    civil_status: Optional[CivilStatus] = None
    annual_family_income: Optional[str] = None
    residing_at: Optional[str] = None
    permanent_residential_address: Optional[str] = None
    contact_number: Optional[str] = None
    family_background: Optional[FamilyBackground] = None
    education: Optional[Education] = None
    current_membership_in_organizations: Optional[List[OrganizationMembership]] = None
    references: Optional[List[Reference]] = None

class StatusHistoryEntry(BaseModel):
    from_status: ApplicationStatus
    to_status: ApplicationStatus
    changed_by: int
    remarks: Optional[str] = None
    changed_at: datetime

class ApprovalsSummary(BaseModel):
    interviewed_by: List[int] = []

class ApplicationResponse(ApplicationCreate):
    # Stored addresses were validated on the way in
    email_address: str
    id: str
    user_id: int
    status: ApplicationStatus
    status_history: List[StatusHistoryEntry] = []
    approvals_summary: ApprovalsSummary = Field(default_factory=ApprovalsSummary)
    created_at: datetime
    updated_at: datetime

class ApplicationListResponse(BaseModel):
    applications: List[ApplicationResponse]
    total: int
    page: int
    limit: int
    pages: int

class StatusUpdateRequest(BaseModel):
    application_id: str
    status: ApplicationStatus
    remarks: Optional[str] = None

class DashboardStatsResponse(BaseModel):
    new_applications: int
    under_review: int
    document_verification: int
    scheduled_interviews: int
    active_scholars: int
    rejected: int
    total_applications: int


# ============================================================
# DOCUMENT SCHEMAS
# ============================================================

class StoredFile(BaseModel):
    file_path: str
    original_name: str
    content_type: Optional[str] = None
    size_bytes: int
    uploaded_at: datetime

class SlotVerification(BaseModel):
    status: DocumentStatus = DocumentStatus.uploaded
    remarks: Optional[str] = None
    verified_by: Optional[int] = None
    updated_at: Optional[datetime] = None

class DocumentSetResponse(BaseModel):
    id: str
    application_id: str
    student_picture: List[StoredFile] = []
    nbi_clearance: List[StoredFile] = []
    grade_report: List[StoredFile] = []
    income_tax_return: List[StoredFile] = []
    good_moral_certificate: List[StoredFile] = []
    physical_checkup: List[StoredFile] = []
    certificates: List[StoredFile] = []
    home_location_sketch: List[StoredFile] = []
    verification: Dict[str, SlotVerification] = {}
    all_verified: bool = False
    created_at: datetime
    updated_at: datetime

class DocumentVerifyRequest(BaseModel):
    slot: DocumentSlot
    status: DocumentStatus
    remarks: Optional[str] = None


# ============================================================
# PERSONALITY TEST SCHEMAS
# ============================================================

class TemplateCreate(BaseModel):
    type: str = Field(..., min_length=1, max_length=100)
    question: str = Field(..., min_length=1)

class TemplateUpdate(BaseModel):
    type: Optional[str] = Field(None, min_length=1, max_length=100)
    question: Optional[str] = Field(None, min_length=1)

class TemplateResponse(BaseModel):
    id: str
    type: str
    question: str
    created_by: int
    created_at: datetime
    updated_at: datetime

class PersonalityQuestion(BaseModel):
    id: str
    type: str
    question: str

class PersonalityTestStartResponse(BaseModel):
    test_id: str
    start_time: datetime
    time_limit_seconds: int
    questions: List[PersonalityQuestion]

class AnswerRequest(BaseModel):
    test_id: str
    question_id: str
    answer: str = Field(..., min_length=1)

class AnswerResponse(BaseModel):
    message: str
    answered: int
    total_questions: int
    completed: bool

class PersonalityAnswerDetail(BaseModel):
    id: str
    question_id: str
    type: Optional[str] = None
    question: Optional[str] = None
    answer: str
    created_at: datetime

class PersonalityTestResponse(BaseModel):
    id: str
    application_id: str
    user_id: int
    questions: List[str]
    answers: List[PersonalityAnswerDetail] = []
    start_time: datetime
    end_time: Optional[datetime] = None
    time_limit_seconds: int
    score: Optional[float] = None
    risk_level_indicator: RiskLevel = RiskLevel.low
    created_at: datetime

class PersonalityTestListResponse(BaseModel):
    tests: List[PersonalityTestResponse]
    total: int
    page: int
    limit: int
    pages: int

class PersonalityTestResultUpdate(BaseModel):
    score: Optional[float] = Field(None, ge=0, le=100)
    risk_level_indicator: Optional[RiskLevel] = None


# ============================================================
# INTERVIEW SCHEMAS
# ============================================================

class InterviewCreate(BaseModel):
    application_id: str
    interviewer: int
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v):
        return to_naive_utc(v)

class InterviewUpdate(BaseModel):
    interviewer: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v):
        return to_naive_utc(v)

class InterviewTimeUpdate(BaseModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v):
        return to_naive_utc(v)

class RecommendationRequest(BaseModel):
    decision: RecommendationDecision
    remarks: Optional[str] = None

class InterviewRecommendation(BaseModel):
    decision: RecommendationDecision
    remarks: Optional[str] = None
    submitted_by: int
    submitted_at: datetime

class InterviewApplicant(BaseModel):
    id: str
    first_name: str
    last_name: str
    status: ApplicationStatus

class InterviewResponse(BaseModel):
    id: str
    application_id: str
    application: Optional[InterviewApplicant] = None
    interviewer: int
    interviewer_name: Optional[str] = None
    start_time: datetime
    end_time: datetime
    recommendation: Optional[InterviewRecommendation] = None
    created_at: datetime
    updated_at: datetime

class InterviewListResponse(BaseModel):
    interviews: List[InterviewResponse]
    total: int
    page: int
    limit: int
    pages: int


# ============================================================
# EVALUATION SCHEMAS
# ============================================================

Rating = Annotated[float, Field(ge=0, le=5)]

class AttendanceAndPunctuality(BaseModel):
    regular_attendance: Rating
    promptness_in_reporting_for_duty: Rating

class QualityOfWorkOutput(BaseModel):
    accuracy_and_thoroughness_of_work: Rating
    organization_and_or_presentation_neatness_of_work: Rating
    effectiveness: Rating

class QuantityOfWorkOutput(BaseModel):
    accomplishes_more_work_on_the_given_time: Rating
    timeliness_in_accomplishing_task_duties: Rating

class AttitudeAndWorkBehavior(BaseModel):
    sense_of_responsibility_and_urgency: Rating
    dependability_and_reliability: Rating
    industry_and_resourcefulness: Rating
    alertness_and_initiative: Rating
    sociability_and_pleasant_disposition: Rating

class TimeKeepingRecord(BaseModel):
    excused_absences: int = Field(0, ge=0)
    unexcused_absences: int = Field(0, ge=0)
    late_greater_than_ten_minutes: int = Field(0, ge=0)
    late_greater_than_one_hour: int = Field(0, ge=0)
    failure_to_punch: int = Field(0, ge=0)
    under_time: int = Field(0, ge=0)

class TimeKeepingUpdate(BaseModel):
    excused_absences: Optional[int] = Field(None, ge=0)
    unexcused_absences: Optional[int] = Field(None, ge=0)
    late_greater_than_ten_minutes: Optional[int] = Field(None, ge=0)
    late_greater_than_one_hour: Optional[int] = Field(None, ge=0)
    failure_to_punch: Optional[int] = Field(None, ge=0)
    under_time: Optional[int] = Field(None, ge=0)

class EvaluationCreate(BaseModel):
    evaluatee_user: int
    attendance_and_punctuality: AttendanceAndPunctuality
    quality_of_work_output: QualityOfWorkOutput
    quantity_of_work_output: QuantityOfWorkOutput
    attitude_and_work_behavior: AttitudeAndWorkBehavior
    remarks_and_recommendation_by_immediate_supervisor: Optional[str] = None
    remarks_comments_by_the_nas: Optional[str] = None
    overall_rating: Rating

class EvaluationUpdate(BaseModel):
    attendance_and_punctuality: Optional[AttendanceAndPunctuality] = None
    quality_of_work_output: Optional[QualityOfWorkOutput] = None
    quantity_of_work_output: Optional[QuantityOfWorkOutput] = None
    attitude_and_work_behavior: Optional[AttitudeAndWorkBehavior] = None
    remarks_and_recommendation_by_immediate_supervisor: Optional[str] = None
    remarks_comments_by_the_nas: Optional[str] = None
    overall_rating: Optional[float] = Field(None, ge=0, le=5)

class EvaluationResponse(EvaluationCreate):
    id: str
    evaluatee_name: Optional[str] = None
    evaluatee_email: Optional[str] = None
    evaluated_by: int
    time_keeping_record: TimeKeepingRecord = Field(default_factory=TimeKeepingRecord)
    created_at: datetime
    updated_at: datetime

class EvaluationListResponse(BaseModel):
    data: List[EvaluationResponse]
    total: int
    page: int
    pages: int


# ============================================================
# PANELIST / APPROVAL FORM SCHEMAS
# ============================================================

class PanelistCreate(BaseModel):
    evaluator_user: int
    evaluation: Optional[str] = None

class PanelistUpdate(BaseModel):
    evaluator_user: int

class PanelistResponse(BaseModel):
    id: str
    evaluator_user: int
    evaluator_name: Optional[str] = None
    evaluator_email: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class PanelistListResponse(BaseModel):
    data: List[PanelistResponse]
    total: int
    page: int
    pages: int

class ApprovalFormCreate(BaseModel):
    application_id: str
    to: str = Field(..., min_length=1)
    designation: str = Field(..., min_length=1)
    department: str = Field(..., min_length=1)
    endorsed_by: Optional[str] = None

class ApprovalFormResponse(ApprovalFormCreate):
    id: str
    department_office_head: int
    created_at: datetime


# ============================================================
# NOTIFICATION / ACTIVITY SCHEMAS
# ============================================================

class NotificationCreate(BaseModel):
    user_id: int
    type: NotificationType = NotificationType.general
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    priority: NotificationPriority = NotificationPriority.medium
    application_id: Optional[str] = None

class NotificationResponse(BaseModel):
    id: str
    user_id: int
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority
    is_read: bool
    metadata: Dict[str, Any] = {}
    created_at: datetime

class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int

class ActivityLogResponse(BaseModel):
    id: str
    user_id: int
    application_id: Optional[str] = None
    activity_type: ActivityType
    title: str
    description: str
    status: Optional[str] = None
    metadata: Dict[str, Any] = {}
    is_system_generated: bool = True
    admin_notes: Optional[str] = None
    timestamp: datetime

class AdminNotesUpdate(BaseModel):
    admin_notes: str


# ============================================================
# ROLE / DEPARTMENT / COURSE SCHEMAS
# ============================================================

class PermissionResponse(BaseModel):
    permission_id: int
    name: str

class RoleCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    permissions: List[str]

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    permissions: Optional[List[str]] = None

class RoleResponse(BaseModel):
    role_id: int
    name: str
    permissions: List[str] = []

class RoleListResponse(BaseModel):
    roles: List[RoleResponse]
    total: int
    page: int
    limit: int
    pages: int

class DepartmentCreate(BaseModel):
    department_code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=3, max_length=100)

class DepartmentUpdate(BaseModel):
    department_code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=3, max_length=100)

class DepartmentResponse(BaseModel):
    department_id: int
    department_code: str
    name: str

class DepartmentListResponse(BaseModel):
    data: List[DepartmentResponse]
    total: int
    page: int
    pages: int

class CourseCreate(BaseModel):
    course_code: str = Field(..., min_length=2, max_length=20)
    name: str = Field(..., min_length=2, max_length=200)

class CourseResponse(BaseModel):
    course_id: int
    course_code: str
    name: str


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
