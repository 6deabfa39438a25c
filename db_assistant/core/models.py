from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    String,
    Boolean,
    TIMESTAMP,
    Text,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from db_assistant.core.database import Base


# =========================
# User
# =========================
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=False, unique=True, index=True)
    password = Column(String, nullable=False)

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    deleted_at = Column(TIMESTAMP(timezone=True), nullable=True, index=True)

    # Relationships
    projects = relationship("Project", back_populates="owner")


# =========================
# Project (registered external database)
# =========================
class Project(Base):
    """
    An external SQL database registered by a user.

    The connection string is only ever handed to the SQL proxy, this service
    never opens a connection to the target database itself.
    """

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    database_type = Column(String, nullable=False)  # mysql / postgresql
    connection_string = Column(String, nullable=False)

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    deleted_at = Column(TIMESTAMP(timezone=True), nullable=True, index=True)

    # Relationships
    owner = relationship("User", back_populates="projects")

    permission = relationship(
        "Permission",
        back_populates="project",
        uselist=False,
        lazy="selectin",
    )

    queries = relationship("QueryLog", back_populates="project")
    messages = relationship("Message", back_populates="project")


# =========================
# Permission (one per project)
# =========================
class Permission(Base):
    __tablename__ = "permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)

    project_id = Column(
        Integer,
        ForeignKey("projects.id"),
        nullable=False,
        unique=True,
    )

    allow_ddl = Column(Boolean, nullable=False, default=True)
    allow_write = Column(Boolean, nullable=False, default=True)
    allow_read = Column(Boolean, nullable=False, default=True)
    allow_delete = Column(Boolean, nullable=False, default=True)

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    deleted_at = Column(TIMESTAMP(timezone=True), nullable=True, index=True)

    project = relationship("Project", back_populates="permission")


# =========================
# QueryLog (AUDIT LAYER)
# =========================
class QueryLog(Base):
    """
    One row per query attempt against a project.

    Rows are append-only: generated (proposed by the assistant) and executed
    queries each get their own row, and nothing rewrites a row once its
    status is written.
    """

    __tablename__ = "queries"

    id = Column(Integer, primary_key=True, autoincrement=True)

    project_id = Column(
        Integer,
        ForeignKey("projects.id"),
        nullable=False,
        index=True,
    )

    query = Column(Text, nullable=False)
    query_type = Column(String, nullable=True)
    status = Column(String, nullable=False)  # success/error/generated/pending

    result = Column(Text, nullable=True)
    error = Column(Text, nullable=True)
    rows_affected = Column(Integer, nullable=True)
    execution_time = Column(Integer, nullable=True)  # milliseconds

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )
    deleted_at = Column(TIMESTAMP(timezone=True), nullable=True, index=True)

    project = relationship("Project", back_populates="queries")


# =========================
# Message (chat history)
# =========================
class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)

    project_id = Column(
        Integer,
        ForeignKey("projects.id"),
        nullable=False,
        index=True,
    )

    role = Column(String, nullable=False)  # user / assistant
    # assistant messages hold the JSON of {"content", "query"}
    content = Column(Text, nullable=False)

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )
    deleted_at = Column(TIMESTAMP(timezone=True), nullable=True, index=True)

    project = relationship("Project", back_populates="messages")
