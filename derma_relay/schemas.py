from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
	low = "low"
	medium = "medium"
	high = "high"


class AnalysisRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	# Optional so that a missing field gets the relay's own 400 message
	base64_image: Optional[str] = Field(default=None, alias="base64Image")
	mime_type: Optional[str] = Field(default=None, alias="mimeType")


class AnalysisResult(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	condition_name: str = Field(alias="conditionName")
	description: str
	symptoms: List[str]
	suggestions: List[str]
	severity: Severity


class PlaceQuery(BaseModel):
	lat: Optional[float] = Field(default=None, allow_inf_nan=False)
	lng: Optional[float] = Field(default=None, allow_inf_nan=False)


class LocalizedText(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	text: Optional[str] = None
	language_code: Optional[str] = Field(default=None, alias="languageCode")


class PlaceResult(BaseModel):
	# Upstream fields outside the field mask are kept as-is
	model_config = ConfigDict(populate_by_name=True, extra="allow")

	display_name: Optional[LocalizedText] = Field(default=None, alias="displayName")
	formatted_address: Optional[str] = Field(default=None, alias="formattedAddress")
	rating: Optional[float] = None
	user_rating_count: Optional[int] = Field(default=None, alias="userRatingCount")
	business_status: Optional[str] = Field(default=None, alias="businessStatus")
	national_phone_number: Optional[str] = Field(default=None, alias="nationalPhoneNumber")
	international_phone_number: Optional[str] = Field(default=None, alias="internationalPhoneNumber")
	website_uri: Optional[str] = Field(default=None, alias="websiteUri")
	google_maps_uri: Optional[str] = Field(default=None, alias="googleMapsUri")
	regular_opening_hours: Optional[Dict[str, Any]] = Field(default=None, alias="regularOpeningHours")
	types: List[str] = []


class PlaceSearchOutcome(BaseModel):
	places: List[PlaceResult] = []
	# Sub-queries that failed upstream; their results are missing from places
	failed_queries: List[str] = []

	@property
	def partial(self) -> bool:
		return bool(self.failed_queries)


class FindDermatologistsResponse(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	places: List[PlaceResult] = []
	failed_queries: List[str] = Field(default=[], alias="failedQueries")


class ErrorResponse(BaseModel):
	error: str
