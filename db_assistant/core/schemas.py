from datetime import datetime
from typing import Annotated, Optional, List, Any
from enum import Enum

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, EmailStr


# =========================
# Enums
# =========================
class DatabaseType(str, Enum):
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class QueryStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    GENERATED = "generated"
    PENDING = "pending"


# =========================
# USER / AUTH
# =========================
class UserBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr


class CreateUser(UserBase):
    password: str = Field(min_length=8)


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserResponse(UserBase):
    id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


# =========================
# PERMISSION
# =========================
class PermissionResponse(BaseModel):
    id: int
    project_id: int
    allow_ddl: bool
    allow_write: bool
    allow_read: bool
    allow_delete: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =========================
# PROJECT
# =========================
class ProjectBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    database_type: DatabaseType
    connection_string: str = Field(min_length=1)


class ProjectCreate(ProjectBase):
    # Omitted flags default to allowed
    allow_ddl: bool = True
    allow_write: bool = True
    allow_read: bool = True
    allow_delete: bool = True


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    connection_string: Optional[str] = Field(default=None, min_length=1)
    allow_ddl: Optional[bool] = None
    allow_write: Optional[bool] = None
    allow_read: Optional[bool] = None
    allow_delete: Optional[bool] = None


class ProjectResponse(ProjectBase):
    id: int
    user_id: int
    created_at: datetime
    updated_at: datetime
    permission: Optional[PermissionResponse] = None

    model_config = ConfigDict(from_attributes=True)


# =========================
# QUERY LOG
# =========================
class QueryLogResponse(BaseModel):
    id: int
    project_id: int
    query: str
    query_type: Optional[str] = None
    status: QueryStatus
    result: Optional[str] = None
    error: Optional[str] = None
    rows_affected: Optional[int] = None
    execution_time: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =========================
# DASHBOARD
# =========================
class UserDashboardResponse(BaseModel):
    total_projects: int
    total_queries: int
    total_messages: int


class ProjectSummaryResponse(BaseModel):
    project_id: int
    project_name: str
    database_type: str
    total_queries: int
    recent_queries: List[QueryLogResponse] = []


# =========================
# CHAT
# =========================
class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1)


class AIResponseData(BaseModel):
    content: str
    query: Optional[str] = None
    # Filled when the assistant proposed a statement
    query_type: Optional[str] = None
    query_description: Optional[str] = None


class MessageResponse(BaseModel):
    id: int
    project_id: int
    role: MessageRole
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChatMessageResponse(BaseModel):
    user_message: MessageResponse
    ai_message: MessageResponse
    ai_response: AIResponseData


class ChatHistoryItem(BaseModel):
    """A stored message with assistant JSON unpacked into ai_response."""

    id: int
    project_id: int
    role: MessageRole
    content: Optional[str] = None
    ai_response: Optional[AIResponseData] = None
    created_at: datetime


# =========================
# SQL PROXY CONTRACT
# =========================
# The proxy may send null for any field; null reads as the zero value
ProxyInt = Annotated[int, BeforeValidator(lambda v: 0 if v is None else v)]
ProxyBool = Annotated[bool, BeforeValidator(lambda v: False if v is None else v)]
ProxyStr = Annotated[str, BeforeValidator(lambda v: "" if v is None else v)]
ProxyStrList = Annotated[List[str], BeforeValidator(lambda v: [] if v is None else v)]


class ExecuteSQLRequest(BaseModel):
    query: str = ""
    dry_run: bool = False


class ValidateSQLRequest(BaseModel):
    query: str = ""


class ExecuteSQLResponse(BaseModel):
    success: ProxyBool = False
    query_type: Optional[str] = None
    columns: Optional[List[str]] = None
    rows: Optional[List[List[Any]]] = None
    row_count: ProxyInt = 0
    affected_rows: ProxyInt = 0
    message: Optional[str] = None
    dry_run: ProxyBool = False
    explain: Optional[List[str]] = None


class ValidateSQLResponse(BaseModel):
    success: ProxyBool = False
    dry_run: ProxyBool = False
    explain: ProxyStrList = []
    message: Optional[str] = None


class GenerateSQLResponse(BaseModel):
    content: ProxyStr = ""
    query: Optional[str] = None


class ConnectionInfo(BaseModel):
    type: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    connected: ProxyBool = False


class ConnectDBResponse(BaseModel):
    success: ProxyBool = False
    message: Optional[str] = None
    connection_info: Optional[ConnectionInfo] = None


class DisconnectDBResponse(BaseModel):
    success: ProxyBool = False
    message: Optional[str] = None
    previous_connection: Optional[ConnectionInfo] = None
