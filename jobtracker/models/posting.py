"""
Job posting extraction models for JobTracker
Structures produced when importing a job from its posting URL
"""

from typing import Optional
from pydantic import BaseModel, Field
from jobtracker.models.job import JobStatus


class ScrapeRequest(BaseModel):
    url: Optional[str] = None


class AnalyzeRequest(BaseModel):
    content: Optional[str] = None
    url: Optional[str] = None


class ParsedJobPosting(BaseModel):
    """Job information extracted from a posting page"""
    company: Optional[str] = Field(None, description="Company name")
    position: Optional[str] = Field(None, description="Job title")
    location: Optional[str] = Field(None, description="Location, including remote if specified")
    salary: Optional[str] = Field(None, description="Salary information if available")
    description: Optional[str] = Field(None, description="Short summary of the job")
    requirements: list[str] = Field(default_factory=list)
    qualifications: list[str] = Field(default_factory=list)

    def to_job_draft(self, url: str) -> "JobDraft":
        """Convert into an unsaved job payload, folding lists into notes."""
        sections = []
        if self.requirements:
            sections.append("Requirements:\n" + "\n".join(f"• {req}" for req in self.requirements))
        if self.qualifications:
            sections.append("Qualifications:\n" + "\n".join(f"• {qual}" for qual in self.qualifications))

        return JobDraft(
            company=self.company or "",
            position=self.position or "",
            location=self.location or "",
            description=self.description or "",
            salary=self.salary or "",
            url=url,
            notes="\n\n".join(sections),
        )


class JobDraft(BaseModel):
    """Prefilled job form values; nothing is persisted until the user saves it"""
    company: str = ""
    position: str = ""
    location: str = ""
    description: str = ""
    salary: str = ""
    url: str = ""
    status: JobStatus = JobStatus.SAVED
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    notes: str = ""
