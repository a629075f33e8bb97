"""Screen controllers.

Each screen owns its view state (loading flag, alert, data), resolves the
user through an AuthGate on mount, and runs fetches inside a TaskScope that
is closed on unmount. Rendering is left to the host application.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from functools import partial
from typing import Callable, Optional

from .auth import AuthGate, AuthService, Navigator, SessionContext
from .backend import BackendError
from .config import HOME_ROUTE, SPECIES_ALL
from .favorites import FavoriteToggle
from .image_host import UploadError, UploadedImage, delete_uploaded_image, upload_image
from .lifecycle import TaskScope
from .models import Favorite, Listing, Profile
from .profile_store import (
    ProfileView,
    load_profile,
    profile_name_error,
    profile_view,
    save_profile,
)
from .repository import (
    ListingFilters,
    fetch_favorites,
    fetch_home_feed,
    fetch_home_sections,
    fetch_listing,
    fetch_listings,
    fetch_suggestions,
    search_listings_by_name,
)
from .search import RecentSearches, SearchTracker
from .submission import SUCCESS_MESSAGE, ListingForm, ValidationError, submit_listing

logger = logging.getLogger(__name__)

NO_FAVORITES_MESSAGE = "You haven't favorited any pets yet."
NOT_LOGGED_IN_MESSAGE = "User not logged in."
NO_RESULTS_MESSAGE = "No pets found."


@dataclass(frozen=True)
class Alert:
    title: str
    message: str


class Screen:
    def __init__(
        self,
        context: SessionContext,
        navigator: Navigator,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self.context = context
        self.navigator = navigator
        self.gate = AuthGate(context, navigator)
        self.tasks: TaskScope | None = None
        self.loading = False
        self.alert: Alert | None = None
        self._executor = executor

    @property
    def user(self):
        return self.gate.user

    @property
    def client_factory(self) -> Callable:
        return self.context.client

    def mount(self) -> list[Future]:
        """Resolve the user and start the screen's initial fetches."""
        self.tasks = TaskScope(self._executor)
        state = self.gate.mount()
        if state.user is None:
            return []
        return self.load()

    def load(self) -> list[Future]:
        return []

    def unmount(self) -> None:
        self.gate.unmount()
        if self.tasks is not None:
            self.tasks.close()

    def show_alert(self, title: str, message: str) -> None:
        logger.info(f"{title}: {message}")
        self.alert = Alert(title, message)

    def _run(self, slot: str, fetch: Callable, apply: Callable) -> Future:
        self.loading = True

        def _apply(result) -> None:
            apply(result)
            self.loading = False

        def _failed(exc: Exception) -> None:
            logger.error(f"{type(self).__name__} fetch {slot} failed: {exc}")
            self.loading = False

        return self.tasks.run(slot, fetch, _apply, _failed)


class HomeScreen(Screen):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.feed: list[Listing] = []
        self.sections: dict[str, list[Listing]] = {}

    def load(self) -> list[Future]:
        def fetch():
            return (
                fetch_home_feed(client_factory=self.client_factory),
                fetch_home_sections(client_factory=self.client_factory),
            )

        def apply(result) -> None:
            self.feed, self.sections = result

        return [self._run("home", fetch, apply)]


class ExploreScreen(Screen):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.filters = ListingFilters()
        self.listings: list[Listing] = []

    def load(self) -> list[Future]:
        return [self.refresh()]

    def set_filters(
        self,
        species: str | None = None,
        breed: str | None = None,
        sort: str | None = None,
    ) -> Future:
        """Change one or more filters and re-run the listing query."""
        self.filters = replace(
            self.filters,
            species=self.filters.species if species is None else species,
            breed=self.filters.breed if breed is None else breed,
            sort=self.filters.sort if sort is None else sort,
        )
        return self.refresh()

    def refresh(self) -> Future:
        filters = self.filters

        def apply(result: list[Listing]) -> None:
            self.listings = result

        return self._run(
            "listings",
            lambda: fetch_listings(filters, client_factory=self.client_factory),
            apply,
        )

    @property
    def empty_message(self) -> str | None:
        if self.loading or self.listings:
            return None
        return NO_RESULTS_MESSAGE


class SearchScreen(Screen):
    def __init__(
        self,
        *args,
        recent: RecentSearches | None = None,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.tracker = SearchTracker(
            recent,
            search_fn=partial(search_listings_by_name, client_factory=self.client_factory),
        )
        self.query = ""
        self.results: list[Listing] = []
        self.suggestions: list[Listing] = []

    @property
    def recent_searches(self) -> list[str]:
        return self.tracker.recent.items

    def load(self) -> list[Future]:
        def apply(result: list[Listing]) -> None:
            self.suggestions = result

        return [
            self._run(
                "suggestions",
                lambda: fetch_suggestions(client_factory=self.client_factory),
                apply,
            )
        ]

    def set_filters(self, species: str = SPECIES_ALL, breed: str = "") -> None:
        self.tracker.set_filters(species, breed)

    def submit(self, query: str | None = None) -> Future | None:
        """Search for the typed query; blank input does nothing."""
        text = (self.query if query is None else (query or "")).strip()
        if not text:
            return None
        self.query = ""
        return self._run_search(lambda: self.tracker.submit_query(text))

    def select_recent(self, query: str) -> Future | None:
        if not (query or "").strip():
            return None
        return self._run_search(lambda: self.tracker.select_recent(query))

    def _run_search(self, fetch: Callable) -> Future:
        def apply(result: list[Listing] | None) -> None:
            self.results = result or []

        return self._run("results", fetch, apply)

    def clear_recent(self) -> None:
        self.tracker.clear_recent()


class ListingDetailScreen(Screen):
    def __init__(self, *args, pet_id: int, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.pet_id = int(pet_id)
        self.listing: Listing | None = None
        self.favorite: FavoriteToggle | None = None

    def load(self) -> list[Future]:
        self.favorite = FavoriteToggle(
            self.user.id, self.pet_id, client_factory=self.client_factory
        )
        favorite = self.favorite
        version = favorite.version

        def fetch():
            listing = fetch_listing(self.pet_id, client_factory=self.client_factory)
            return listing, favorite.check()

        def apply(result) -> None:
            self.listing, favorited = result
            favorite.apply_loaded(favorited, version)

        return [self._run("listing", fetch, apply)]

    @property
    def favorited(self) -> bool:
        return bool(self.favorite and self.favorite.favorited)

    @property
    def favorite_pending(self) -> bool:
        return bool(self.favorite and self.favorite.pending)

    def toggle_favorite(self) -> bool:
        if self.favorite is None:
            return False
        return self.favorite.toggle()


class FavoritesScreen(Screen):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.favorites: list[Favorite] = []

    def load(self) -> list[Future]:
        user_id = self.user.id

        def apply(result: list[Favorite]) -> None:
            self.favorites = result

        return [
            self._run(
                "favorites",
                lambda: fetch_favorites(user_id, client_factory=self.client_factory),
                apply,
            )
        ]

    @property
    def pets(self) -> list[Listing]:
        return [fav.pet for fav in self.favorites if fav.pet is not None]

    @property
    def empty_message(self) -> str | None:
        if self.gate.loading or self.loading:
            return None
        if self.user is None:
            return NOT_LOGGED_IN_MESSAGE
        if not self.favorites:
            return NO_FAVORITES_MESSAGE
        return None


class AddListingScreen(Screen):
    def __init__(
        self,
        *args,
        uploader: Callable[[str], UploadedImage] = upload_image,
        deleter: Callable[[UploadedImage], bool] = delete_uploaded_image,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.form = ListingForm()
        self.uploader = uploader
        self.deleter = deleter
        self.created: Listing | None = None

    def submit(self) -> Listing | None:
        """Submit the form; failures raise an alert and keep the form."""
        self.loading = True
        try:
            listing = submit_listing(
                self.form,
                client_factory=self.client_factory,
                uploader=self.uploader,
                deleter=self.deleter,
            )
        except (ValidationError, UploadError, BackendError) as exc:
            self.show_alert("Error", str(exc) or "Something went wrong.")
            return None
        finally:
            self.loading = False
        self.created = listing
        self.form.clear()
        self.show_alert("Success", SUCCESS_MESSAGE)
        self.navigator.replace(HOME_ROUTE)
        return listing


class ProfileScreen(Screen):
    def __init__(
        self,
        *args,
        uploader: Callable[[str], UploadedImage] = upload_image,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.uploader = uploader
        self.profile: Profile | None = None
        self.name = ""
        self.bio = ""
        self.avatar_url = ""
        self.uploading = False

    def load(self) -> list[Future]:
        user_id = self.user.id

        def apply(result: Profile | None) -> None:
            self.profile = result
            self.name = result.name if result else ""
            self.bio = result.bio if result else ""
            self.avatar_url = result.avatar_url if result else ""

        return [
            self._run(
                "profile",
                lambda: load_profile(user_id, client_factory=self.client_factory),
                apply,
            )
        ]

    @property
    def view(self) -> ProfileView:
        email = self.user.email if self.user else None
        return profile_view(self.profile, email)

    def upload_avatar(self, image_path: str) -> bool:
        self.uploading = True
        try:
            uploaded = self.uploader(image_path)
        except UploadError as exc:
            self.show_alert("Upload Error", str(exc) or "Failed to upload image.")
            return False
        finally:
            self.uploading = False
        self.avatar_url = uploaded.secure_url
        return True

    def save(self) -> Profile | None:
        error = profile_name_error(self.name)
        if error:
            self.show_alert("Validation Error", error)
            return None
        base = self.profile or Profile(id=self.user.id)
        updated = replace(
            base,
            id=self.user.id,
            name=self.name.strip(),
            bio=self.bio.strip(),
            avatar_url=self.avatar_url,
        )
        try:
            saved = save_profile(updated, client_factory=self.client_factory)
        except BackendError as exc:
            self.show_alert("Update Error", exc.message)
            return None
        self.profile = saved
        self.show_alert("Success", "Profile updated successfully")
        return saved

    def sign_out(self) -> bool:
        try:
            AuthService(self.context, self.navigator).sign_out()
        except BackendError as exc:
            self.show_alert("Logout Failed", exc.message)
            return False
        return True

