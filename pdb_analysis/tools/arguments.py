"""
Argument models for the report tools.

Shared by the MCP server, the REST API and the CLI so every transport
applies the same trimming and identifier rules.
"""

from typing import Any, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from ..errors import ValidationError, create_error_context

A = TypeVar("A", bound=BaseModel)


class AnalyzeActiveSiteArgs(BaseModel):
    """Arguments of ``analyze-active-site``."""
    pdb_id: str = Field(
        ...,
        alias="pdbId",
        description="The PDB ID of the protein structure to analyze (e.g., 6LU7)",
        json_schema_extra={"example": "6LU7"}
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("pdb_id")
    @classmethod
    def validate_pdb_id(cls, v):
        """PDB ids are four alphanumeric characters, stored upper-case."""
        v = v.strip()
        if len(v) != 4 or not (v.isascii() and v.isalnum()):
            raise ValueError("PDB ID must be exactly 4 alphanumeric characters")
        return v.upper()


class SearchDiseaseProteinsArgs(BaseModel):
    """Arguments of ``search-disease-proteins``."""
    disease: str = Field(
        ...,
        max_length=200,
        description="Disease name (e.g., 'covid', 'alzheimer's')",
        json_schema_extra={"example": "covid"}
    )

    @field_validator("disease")
    @classmethod
    def validate_disease(cls, v):
        if not v.strip():
            raise ValueError("Disease name cannot be empty or whitespace-only")
        return v.strip()


def validate_arguments(model: Type[A], **arguments: Any) -> A:
    """
    Build ``model`` from keyword arguments.

    Raises:
        ValidationError: With pydantic's messages joined into one line
    """
    try:
        return model.model_validate(arguments)
    except PydanticValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise ValidationError(
            f"Invalid arguments: {messages}",
            context=create_error_context(operation=model.__name__, **{k: str(v) for k, v in arguments.items()}),
            original_exception=e
        )
