"""Services for report storage, place lookup and map sessions."""

from parkpatrol.services.geocoder import ReverseGeocoder
from parkpatrol.services.map_session import MapSession
from parkpatrol.services.profile_store import ProfileStore
from parkpatrol.services.report_store import ReportStore, StoreChange

__all__ = ["MapSession", "ProfileStore", "ReportStore", "ReverseGeocoder", "StoreChange"]
