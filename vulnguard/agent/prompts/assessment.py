"""Prompts for the AssessmentClient (repository analysis and vulnerability scan)."""

from __future__ import annotations

from vulnguard.models.repository import Repository

ANALYZE_PROMPT_TEMPLATE = """\
You are a developer assistant. I will provide a GitHub repository URL.
You must use Google Search to find details about this repository.

URL: {url}

Task:
1. Identify the Project Name (usually the repo name or title).
2. Identify the main Technology Stack (e.g. React, Node.js, Python, Go, Rust).
3. Identify the Core Version (The version of the main framework or the project \
version. e.g. 18.2.0. If unknown, say 'Latest').
4. List the Dependencies (A list of key dependencies found in package.json, \
requirements.txt, go.mod, etc.).

Respond using this EXACT format (do not use markdown formatting like ** or ##):
Name: [Project Name]
Technology: [Technology Name]
Version: [Version Number]
Dependencies: [Comma separated list of dependencies or JSON structure]
"""

SCAN_PROMPT_TEMPLATE = """\
You are a Senior Security Engineer. Perform a vulnerability assessment for the \
following project.

Project Name: {name}
Repository URL: {url}
Technology Stack: {technology}
Core Version: {version}

Dependencies List:
{dependencies}

Task:
1. Analyze the provided technology stack, version, and dependencies.
2. Use Google Search to find RECENT (last 12 months) and CRITICAL security \
vulnerabilities (CVEs) associated with these specific versions.
3. Ignore minor or patched vulnerabilities unless the version listed is \
outdated and vulnerable.
4. Provide a concise report in Markdown format.
5. Determine the overall status: 'safe', 'warning' (minor issues), or \
'critical' (high severity CVEs found).

Report Structure:
- **Overall Status**: [SAFE/WARNING/CRITICAL]
- **Summary**: Brief executive summary.
- **Findings**: List specific CVEs or risks found with links if available.
- **Recommendations**: Immediate actions required.
"""


def format_analyze_prompt(url: str) -> str:
    return ANALYZE_PROMPT_TEMPLATE.format(url=url)


def format_scan_prompt(repo: Repository) -> str:
    return SCAN_PROMPT_TEMPLATE.format(
        name=repo.name,
        url=repo.url,
        technology=repo.technology,
        version=repo.version,
        dependencies=repo.dependencies or "(none listed)",
    )
