# Prompt builders for the one-time profile enrichment.
# - Every prompt follows the same layout:
#   ROLE, CONTEXT, DATA, TASK, OUTPUT REQUIREMENTS
# - Prompts provided:
#   1) build_bio_prompt
#   2) build_project_summaries_prompt (JSON array output)
#   3) build_value_statement_prompt
#
# NOTE: Prompts never ask the model to guess pronouns. Bios and value
# statements refer to the person by name or with "they".

from typing import Any, Dict, List, Optional

from profile_enrichment.models.profile import MergedProfile

# =============================================================================
# SYSTEM INSTRUCTIONS
# =============================================================================
BIO_SYSTEM_INSTRUCTION = (
    "You are a professional HR content writer. You write accurate, concise "
    "employee bios using only the facts you are given."
)

PROJECT_SUMMARIES_SYSTEM_INSTRUCTION = (
    "You are a technical documentation assistant. You return strict JSON only, "
    "with no commentary and no markdown."
)

VALUE_STATEMENT_SYSTEM_INSTRUCTION = (
    "You are a career development assistant writing short, forward-looking "
    "value statements for employee profiles."
)

MAX_POSITIONS_IN_BIO = 5
MAX_REPOSITORIES_IN_BIO = 10
MAX_SKILLS_IN_BIO = 20
MAX_EDUCATION_IN_BIO = 3
ENTRY_PREVIEW_CHARS = 300


def _entry_text(entry: Any, limit: int = ENTRY_PREVIEW_CHARS) -> str:
    """Render one merged entry (string or provider object) as a single line."""
    if isinstance(entry, str):
        return entry.strip()[:limit]
    if isinstance(entry, dict):
        title = entry.get("title") or entry.get("degree") or entry.get("name") or ""
        company = entry.get("company") or entry.get("companyName") or entry.get("school") or ""
        text = f"{title} at {company}" if title and company else (title or company)
        description = entry.get("description")
        if description:
            text = f"{text}: {description}" if text else description
        return str(text).strip()[:limit]
    return str(entry)[:limit]


def _repository_lines(repository: Dict[str, Any], detailed: bool) -> List[str]:
    name = repository.get("name") or repository.get("full_name") or "Repository"
    lines = [name]
    if repository.get("description"):
        lines.append(f"   Description: {repository['description']}")
    if repository.get("language"):
        lines.append(f"   Primary Language: {repository['language']}")
    if detailed:
        stars = repository.get("stars") or repository.get("stargazers_count")
        if stars:
            lines.append(f"   Stars: {stars}")
        url = repository.get("url") or repository.get("html_url")
        if url:
            lines.append(f"   URL: {url}")
        if repository.get("fork") or repository.get("is_fork"):
            lines.append("   Type: Forked repository (contribution to an existing project)")
        topics = repository.get("topics")
        if isinstance(topics, list) and topics:
            lines.append(f"   Topics: {', '.join(str(topic) for topic in topics)}")
    return lines


def build_bio_prompt(
    full_name: str,
    current_role: Optional[str],
    company_name: Optional[str],
    merged: MergedProfile,
) -> str:
    """Prompt for a 3 to 5 sentence professional bio."""
    role = current_role or "their current role"
    company = company_name or "the company"

    sections = [
        "You are a professional HR content writer specializing in employee bios "
        "for internal company directories.",
        "",
        "CONTEXT:",
        f"You are writing a bio for {full_name}, who works as {role} at {company}.",
        "",
    ]

    provider_a = merged.provider_a_profile or {}
    if provider_a:
        sections.append("PROFESSIONAL NETWORK PROFILE DATA:")
        if provider_a.get("headline"):
            sections.append(f"- Headline: {provider_a['headline']}")
        if provider_a.get("summary"):
            sections.append(f"- Summary: {str(provider_a['summary'])[:500]}")
        sections.append("")

    if merged.work_experience:
        sections.append("WORK EXPERIENCE:")
        for entry in merged.work_experience[:MAX_POSITIONS_IN_BIO]:
            text = _entry_text(entry)
            if text:
                sections.append(f"- {text}")
        sections.append("")

    if merged.skills:
        sections.append("SKILLS:")
        sections.append(f"- {', '.join(merged.skills[:MAX_SKILLS_IN_BIO])}")
        sections.append("")

    if merged.education:
        sections.append("EDUCATION:")
        for entry in merged.education[:MAX_EDUCATION_IN_BIO]:
            text = _entry_text(entry, limit=200)
            if text:
                sections.append(f"- {text}")
        sections.append("")

    repositories = [repo for repo in merged.projects if isinstance(repo, dict)]
    if repositories:
        sections.append("CODE REPOSITORIES:")
        for index, repository in enumerate(repositories[:MAX_REPOSITORIES_IN_BIO], start=1):
            lines = _repository_lines(repository, detailed=False)
            sections.append(f"{index}. {lines[0]}")
            sections.extend(lines[1:])
        sections.append("")

    sections.extend([
        "TASK:",
        "Write a professional bio that:",
        "1. Synthesizes the work experience, skills, education and repositories above",
        f"2. Describes {full_name}'s current responsibilities at {company}",
        "3. Highlights concrete technical expertise and past achievements",
        "",
        "OUTPUT REQUIREMENTS:",
        f"- Write in third person. Refer to the person as \"{full_name}\" or \"they\"; "
        "never use gendered pronouns",
        "- Length: 3-5 sentences, maximum 250 words",
        "- Tone: Professional, confident and engaging",
        "- Describe only existing background and current responsibilities, "
        "not future goals or target roles",
        "- Do NOT include contact information, email addresses, phone numbers, "
        "URLs or social media handles",
        "- Format: Return ONLY the bio as plain text, no markdown, no code blocks, "
        "no explanations",
        "",
        f"Now write the bio for {full_name}:",
    ])
    return "\n".join(sections)


def build_project_summaries_prompt(
    repositories: List[Dict[str, Any]],
    max_projects: int = 20,
) -> str:
    """Prompt asking for a JSON array of {"repository_name", "summary"} objects."""
    sections = [
        "You are a technical documentation AI assistant specializing in clear, "
        "professional summaries of software repositories.",
        "",
        "CONTEXT:",
        "These summaries appear on an employee's internal profile to showcase "
        "their technical contributions.",
        "",
        "REPOSITORY DATA:",
    ]

    for index, repository in enumerate(repositories[:max_projects], start=1):
        lines = _repository_lines(repository, detailed=True)
        sections.append(f"{index}. {lines[0]}")
        sections.extend(lines[1:])
        sections.append("")

    sections.extend([
        "TASK:",
        "For EACH repository above write a unique summary that:",
        "1. Describes the project's purpose and main functionality",
        "2. Names the specific technologies used",
        "3. Explains the technical or business value of the project",
        "4. For forked repositories, notes that it is a contribution to an existing project",
        "",
        "OUTPUT REQUIREMENTS:",
        "- Return a valid JSON array of objects with \"repository_name\" and \"summary\" fields",
        "- Use the repository name exactly as listed above",
        "- Each summary: 2-3 sentences, maximum 200 words",
        "- Format: JSON only, no markdown code blocks, no additional text",
        "- Example: [{\"repository_name\": \"project-name\", \"summary\": \"...\"}]",
        "",
        "Now generate the project summaries:",
    ])
    return "\n".join(sections)


def build_value_statement_prompt(
    full_name: str,
    current_role: Optional[str],
    target_role: Optional[str],
    company_name: Optional[str],
) -> str:
    """Prompt for a short, future-focused statement about the subject's path."""
    role = current_role or "their current role"
    company = company_name or "the company"
    progressing = bool(target_role) and target_role != current_role

    sections = [
        "You are a professional HR and career development assistant specializing "
        "in value statements for employee career progression.",
        "",
        "CONTEXT:",
        f"- Employee: {full_name}",
        f"- Company: {company}",
        f"- Current Role: {role}",
        f"- Target Role: {target_role}" if progressing
        else "- Target Role: Same as current role (no change planned)",
        "",
        "TASK:",
        "Write a value statement that:",
        f"1. Opens with the strategic contribution {full_name} makes at {company} "
        "(do not start with \"currently works as\")",
    ]
    if progressing:
        sections.append(f"2. States that {full_name} is progressing toward the role of {target_role}")
        sections.append(f"3. Explains the impact {full_name} can have at {company} in that role")
    else:
        sections.append(f"2. Notes that {full_name} is continuing in their current role")
        sections.append(f"3. Explains the value {full_name} brings to {company} going forward")

    sections.extend([
        "",
        "OUTPUT REQUIREMENTS:",
        "- Length: 2-3 sentences, maximum 150 words",
        f"- Refer to the person as \"{full_name}\" or \"they\"; never use gendered pronouns",
        "- Focus on future potential and organizational impact; do NOT repeat "
        "career history, skills or repository details",
        "- Format: Plain text, no markdown, no bullet points",
        "",
        f"Now write the value statement for {full_name}:",
    ])
    return "\n".join(sections)
