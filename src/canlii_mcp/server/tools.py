"""
MCP tool façade over the CanLII REST client.

Each tool maps its declared arguments onto one CanLIIRestClient lookup and
renders the UpstreamResult: the payload as indented JSON text on success, a
ToolError (rendered by the SDK as an isError result) on failure.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Annotated

import orjson
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from canlii_mcp.connectors.canlii.types import CitationType, Language

if TYPE_CHECKING:
    from canlii_mcp.connectors.canlii.rest_client import CanLIIRestClient
    from canlii_mcp.connectors.canlii.types import UpstreamResult

logger = logging.getLogger(__name__)

SERVER_NAME = "canlii"
SERVER_INSTRUCTIONS = (
    "Read-only lookups of Canadian case law and legislation from CanLII. "
    "Requests are serialized and limited to 2 per second and 5,000 per day."
)

TOOL_NAMES: tuple[str, ...] = (
    "list_case_databases",
    "list_cases",
    "get_case",
    "get_case_citations",
    "list_legislation_databases",
    "list_legislation",
    "get_legislation",
)

LanguageArg = Annotated[Language, Field(description="Response language")]
DateArg = Annotated[str | None, Field(description="Date filter (YYYY-MM-DD)")]


def render_result(result: UpstreamResult) -> str:
    """
    Render an UpstreamResult as tool output.

    Raises:
        ToolError: If the upstream call failed; the message is surfaced as-is.
    """
    if not result.success:
        raise ToolError(result.error or "CanLII request failed")
    try:
        return orjson.dumps(result.payload, option=orjson.OPT_INDENT_2).decode()
    except orjson.JSONEncodeError:
        # Integers beyond 64 bits decode fine upstream but orjson refuses them
        logger.debug("Payload not encodable by orjson, using json")
        return json.dumps(result.payload, indent=2, ensure_ascii=False)


def _read_only(title: str) -> dict[str, object]:
    return {"title": title, "readOnlyHint": True}


def create_server(client: CanLIIRestClient) -> FastMCP:
    """
    Build the MCP server exposing the CanLII lookups.

    Args:
        client: Shared REST client; its governor admits every tool call.
    """
    mcp = FastMCP(SERVER_NAME, instructions=SERVER_INSTRUCTIONS)

    @mcp.tool(annotations=_read_only("List Case Databases"))
    async def list_case_databases(language: LanguageArg = "en") -> str:
        """List all courts and tribunals in the CanLII collection with their database IDs."""
        return render_result(await client.list_case_databases(language))

    @mcp.tool(annotations=_read_only("List Cases"))
    async def list_cases(
        database_id: Annotated[
            str, Field(description='Database ID from list_case_databases (e.g. "onca", "csc-scc")')
        ],
        language: LanguageArg = "en",
        offset: Annotated[int, Field(ge=0, description="Starting record index")] = 0,
        result_count: Annotated[
            int, Field(ge=1, le=10000, description="Number of results to return (max 10000)")
        ] = 25,
        published_before: DateArg = None,
        published_after: DateArg = None,
        decision_date_before: DateArg = None,
        decision_date_after: DateArg = None,
    ) -> str:
        """List decisions from a specific caselaw database. Returns case titles, citations, and IDs."""
        return render_result(
            await client.list_cases(
                database_id,
                language=language,
                offset=offset,
                result_count=result_count,
                published_before=published_before,
                published_after=published_after,
                decision_date_before=decision_date_before,
                decision_date_after=decision_date_after,
            )
        )

    @mcp.tool(annotations=_read_only("Get Case"))
    async def get_case(
        database_id: Annotated[str, Field(description='Database ID (e.g. "csc-scc")')],
        case_id: Annotated[str, Field(description='Case ID from list_cases (e.g. "2008scc9")')],
        language: LanguageArg = "en",
    ) -> str:
        """Get metadata for a specific case including title, citation, decision date, keywords, and URL."""
        return render_result(await client.get_case(database_id, case_id, language=language))

    @mcp.tool(annotations=_read_only("Get Case Citations"))
    async def get_case_citations(
        database_id: Annotated[str, Field(description='Database ID (e.g. "onca")')],
        case_id: Annotated[str, Field(description='Case ID (e.g. "1999canlii1527")')],
        citation_type: Annotated[
            CitationType, Field(description="Type of citation data to retrieve")
        ],
        language: Annotated[
            Language,
            Field(description="Response language (currently only 'en' is supported by the API)"),
        ] = "en",
    ) -> str:
        """Get citation information for a case: what it cites, what cites it, or what
        legislation it references. The CanLII API currently only supports English for this
        endpoint; French requests fall back to English."""
        if language != "en":
            logger.debug("Citator is English-only, ignoring language", extra={"language": language})
        return render_result(await client.get_case_citations(database_id, case_id, citation_type))

    @mcp.tool(annotations=_read_only("List Legislation Databases"))
    async def list_legislation_databases(language: LanguageArg = "en") -> str:
        """List all legislation and regulation databases in the CanLII collection."""
        return render_result(await client.list_legislation_databases(language))

    @mcp.tool(annotations=_read_only("List Legislation"))
    async def list_legislation(
        database_id: Annotated[
            str,
            Field(
                description='Legislation database ID from list_legislation_databases '
                '(e.g. "ons" for Ontario statutes)'
            ),
        ],
        language: LanguageArg = "en",
    ) -> str:
        """List statutes or regulations from a specific legislation database."""
        return render_result(await client.list_legislation(database_id, language=language))

    @mcp.tool(annotations=_read_only("Get Legislation"))
    async def get_legislation(
        database_id: Annotated[str, Field(description="Legislation database ID")],
        legislation_id: Annotated[
            str, Field(description='Legislation ID from list_legislation (e.g. "rso-1990-c-a1")')
        ],
        language: LanguageArg = "en",
    ) -> str:
        """Get metadata for a specific piece of legislation including title, citation, dates,
        and repeal status."""
        return render_result(
            await client.get_legislation(database_id, legislation_id, language=language)
        )

    return mcp
