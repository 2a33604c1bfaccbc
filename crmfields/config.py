"""Engine configuration.

``EngineConfig`` collects the knobs that differ between deployments: the select
placeholder text, how multi-valued fields are serialized, which file types a file
field accepts, and the per-entity tables that map custom-field labels onto the
standard entity columns the backend stores outside the custom-fields blob.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Callable, Dict, Tuple

SELECT_PLACEHOLDER = "Select an option"

ACCEPTED_FILE_TYPES: Tuple[str, ...] = (".pdf", ".doc", ".docx", ".txt")

# Map admin field labels to persisted entity columns; unmapped labels live in the custom-fields blob
LEAD_COLUMNS: Dict[str, str] = {
    "First Name": "first_name", "First": "first_name", "FName": "first_name",
    "Last Name": "last_name", "Last": "last_name", "LName": "last_name",
    "Status": "status", "Lead Status": "status",
    "Nickname": "nickname", "Nick Name": "nickname",
    "Title": "title", "Job Title": "title", "Position": "title",
    "Organization": "organization_name", "Organization Name": "organization_name", "Company": "organization_name",
    "Department": "department", "Dept": "department",
    "Reports To": "reports_to", "Manager": "reports_to",
    "Owner": "owner", "Assigned To": "owner", "Assigned Owner": "owner",
    "Secondary Owners": "secondary_owners", "Secondary Owner": "secondary_owners",
    "Email": "email", "Email 1": "email", "Email Address": "email", "E-mail": "email",
    "Email 2": "email2",
    "Phone": "phone", "Phone Number": "phone", "Telephone": "phone",
    "Mobile Phone": "mobile_phone", "Mobile": "mobile_phone", "Cell Phone": "mobile_phone",
    "Direct Line": "direct_line",
    "LinkedIn URL": "linkedin_url", "LinkedIn": "linkedin_url", "LinkedIn Profile": "linkedin_url",
    "Address": "address", "Street Address": "address", "Address 1": "address",
}

ORGANIZATION_COLUMNS: Dict[str, str] = {
    "Organization Name": "name", "Organization": "name", "Company": "name", "Name": "name",
    "Nicknames": "nicknames", "Nickname": "nicknames",
    "Parent Organization": "parent_organization",
    "Website": "website", "Organization Website": "website", "URL": "website",
    "Contact Phone": "contact_phone", "Main Phone": "contact_phone",
    "Address": "address",
    "Status": "status",
    "Contract Signed on File": "contract_on_file",
    "Contract Signed By": "contract_signed_by",
    "Date Contract Signed": "date_contract_signed",
    "Year Founded": "year_founded",
    "Overview": "overview", "Organization Overview": "overview", "About": "overview",
    "Standard Perm Fee (%)": "perm_fee",
    "# of Employees": "num_employees",
    "# of Offices": "num_offices",
}

JOB_SEEKER_COLUMNS: Dict[str, str] = {
    "First Name": "first_name", "First": "first_name", "FName": "first_name",
    "Last Name": "last_name", "Last": "last_name", "LName": "last_name",
    "Email": "email", "Email Address": "email", "E-mail": "email",
    "Phone": "phone", "Phone Number": "phone", "Telephone": "phone",
    "Mobile Phone": "mobile_phone", "Mobile": "mobile_phone", "Cell Phone": "mobile_phone",
    "Address": "address", "Street Address": "address",
    "City": "city", "State": "state",
    "ZIP Code": "zip", "ZIP": "zip", "Zip Code": "zip", "Postal Code": "zip",
    "Status": "status", "Current Status": "status",
    "Current Organization": "current_organization", "Organization": "current_organization",
    "Company": "current_organization",
    "Title": "title", "Job Title": "title", "Position": "title",
    "Resume Text": "resume_text", "Resume": "resume_text", "CV": "resume_text",
    "Skills": "skills", "Skill Set": "skills", "Technical Skills": "skills",
    "Desired Salary": "desired_salary", "Salary": "desired_salary", "Expected Salary": "desired_salary",
    "Owner": "owner", "Assigned To": "owner", "Assigned Owner": "owner",
    "Date Added": "date_added", "Added Date": "date_added", "Created Date": "date_added",
}

HIRING_MANAGER_COLUMNS: Dict[str, str] = {
    "First Name": "first_name", "First": "first_name", "FName": "first_name",
    "Last Name": "last_name", "Last": "last_name", "LName": "last_name",
    "Email": "email", "Email 1": "email", "Email Address": "email", "E-mail": "email",
    "Email 2": "email2",
    "Phone": "phone", "Phone Number": "phone", "Telephone": "phone",
    "Mobile Phone": "mobile_phone", "Mobile": "mobile_phone", "Cell Phone": "mobile_phone",
    "Direct Line": "direct_line",
    "Status": "status", "Current Status": "status",
    "Title": "title", "Job Title": "title", "Position": "title",
    "Organization": "organization_name", "Organization Name": "organization_name",
    "Company": "organization_name",
    "Department": "department", "Dept": "department",
    "Reports To": "reports_to", "Manager": "reports_to",
    "Owner": "owner", "Assigned To": "owner", "Assigned Owner": "owner",
    "Secondary Owners": "secondary_owners", "Secondary Owner": "secondary_owners",
}

JOB_COLUMNS: Dict[str, str] = {
    "Job Title": "job_title", "Title": "job_title",
    "Category": "category",
    "Organization": "organization_name",
    "Hiring Manager": "hiring_manager",
    "Status": "status",
    "Priority": "priority",
    "Employment Type": "employment_type",
    "Start Date": "start_date",
    "Worksite Location": "worksite_location",
    "Remote Option": "remote_option",
    "Job Description": "job_description", "Description": "job_description",
    "Minimum Salary": "min_salary", "Maximum Salary": "max_salary",
    "Benefits": "benefits",
    "Required Skills": "required_skills",
    "Job Board Status": "job_board_status",
    "Owner": "owner",
    "Date Added": "date_added",
}

DEFAULT_STANDARD_COLUMNS: Dict[str, Dict[str, str]] = {
    "leads": LEAD_COLUMNS,
    "organizations": ORGANIZATION_COLUMNS,
    "job-seekers": JOB_SEEKER_COLUMNS,
    "hiring-managers": HIRING_MANAGER_COLUMNS,
    "jobs": JOB_COLUMNS,
}


@dataclass(frozen=True)
class EngineConfig:
    """Engine-wide settings.

    Attributes:
        select_placeholder: Option text that never counts as a chosen value
        multiselect_as_string: Serialize multi-values as comma-joined strings in
            submission payloads instead of lists
        accepted_file_types: Extensions a file field accepts
        max_resolver_passes: Upper bound on dependency/address passes per change
        standard_columns: entity type -> {field label -> backend column}
        today: Clock used to seed empty date fields

    Examples:
        >>> cfg = EngineConfig.from_dict({"multiselectAsString": True})
        >>> cfg.multiselect_as_string
        True
        >>> cfg.select_placeholder
        'Select an option'
    """
    select_placeholder: str = SELECT_PLACEHOLDER
    multiselect_as_string: bool = False
    accepted_file_types: Tuple[str, ...] = ACCEPTED_FILE_TYPES
    max_resolver_passes: int = 10
    standard_columns: Dict[str, Dict[str, str]] = field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_STANDARD_COLUMNS.items()}
    )
    today: Callable[[], date] = field(default=date.today, compare=False, repr=False)

    def columns_for(self, entity_type: str) -> Dict[str, str]:
        """Label -> column table for an entity type (empty when unknown)."""
        return self.standard_columns.get(entity_type, {})

    def with_today(self, today: Callable[[], date]) -> "EngineConfig":
        """Return a copy that uses a different clock."""
        return replace(self, today=today)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization (the clock is not serialized)."""
        return {
            "selectPlaceholder": self.select_placeholder,
            "multiselectAsString": self.multiselect_as_string,
            "acceptedFileTypes": list(self.accepted_file_types),
            "maxResolverPasses": self.max_resolver_passes,
            "standardColumns": {k: dict(v) for k, v in self.standard_columns.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Create EngineConfig from dict; missing keys keep their defaults.

        ``standardColumns`` entries are merged over the default tables, so a
        deployment only has to list the entities it customizes.
        """
        defaults = cls()
        columns = {k: dict(v) for k, v in defaults.standard_columns.items()}
        for entity_type, table in (data.get("standardColumns") or {}).items():
            columns[entity_type] = dict(table)
        return cls(
            select_placeholder=data.get("selectPlaceholder", defaults.select_placeholder),
            multiselect_as_string=bool(data.get("multiselectAsString", defaults.multiselect_as_string)),
            accepted_file_types=tuple(data.get("acceptedFileTypes", defaults.accepted_file_types)),
            max_resolver_passes=int(data.get("maxResolverPasses", defaults.max_resolver_passes)),
            standard_columns=columns,
        )


DEFAULT_CONFIG = EngineConfig()


__all__ = [
    "SELECT_PLACEHOLDER",
    "ACCEPTED_FILE_TYPES",
    "DEFAULT_STANDARD_COLUMNS",
    "EngineConfig",
    "DEFAULT_CONFIG",
]
