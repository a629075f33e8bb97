"""Command line front-end for PetAdopt."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from .auth import AuthService, LoggingNavigator, SessionContext, SessionStore
from .backend import BackendError
from .config import (
    SESSION_CACHE_DIR,
    SORT_MODES,
    SORT_NEWEST,
    SPECIES_ALL,
    get_log_level,
)
from .repository import ListingFilters
from .screens import (
    AddListingScreen,
    ExploreScreen,
    FavoritesScreen,
    HomeScreen,
    ListingDetailScreen,
    ProfileScreen,
    Screen,
    SearchScreen,
)

logger = logging.getLogger(__name__)


def _print_listings(title: str, listings) -> None:
    print(f"== {title} ({len(listings)}) ==")
    for listing in listings:
        print(listing)


def _print_alert(screen: Screen) -> None:
    if screen.alert is not None:
        print(f"{screen.alert.title}: {screen.alert.message}")


def _open(screen: Screen) -> bool:
    """Mount a screen and wait for its initial fetches."""
    futures = screen.mount()
    if screen.user is None:
        print("Not signed in. Run `petadopt login` first.")
        return False
    for future in futures:
        future.result()
    return True


# ===========================
# Auth commands
# ===========================


def cmd_signup(args, context, navigator) -> int:
    try:
        user, session = AuthService(context, navigator).sign_up(args.email, args.password)
    except (ValueError, BackendError) as exc:
        print(f"Signup Failed: {exc}")
        return 1
    if session is None:
        print("Check your email: a confirmation email has been sent!")
    else:
        print(f"Signed up and signed in as {user.email}.")
    return 0


def cmd_login(args, context, navigator) -> int:
    try:
        session = AuthService(context, navigator).sign_in_with_password(
            args.email, args.password
        )
    except (ValueError, BackendError) as exc:
        print(f"Login Failed: {exc}")
        return 1
    print(f"Signed in as {session.user.email or session.user.id}.")
    return 0


def cmd_otp_send(args, context, navigator) -> int:
    try:
        AuthService(context, navigator).send_otp(args.phone)
    except (ValueError, BackendError) as exc:
        print(f"OTP Failed: {exc}")
        return 1
    print("OTP Sent! Check your phone for the code.")
    return 0


def cmd_otp_verify(args, context, navigator) -> int:
    try:
        session = AuthService(context, navigator).verify_otp(args.phone, args.code)
    except (ValueError, BackendError) as exc:
        print(f"OTP Verification Failed: {exc}")
        return 1
    print(f"Signed in as {session.user.phone or session.user.id}.")
    return 0


def cmd_logout(args, context, navigator) -> int:
    screen = ProfileScreen(context, navigator)
    try:
        if not _open(screen):
            return 1
        if not screen.sign_out():
            _print_alert(screen)
            return 1
    finally:
        screen.unmount()
    print("Signed out.")
    return 0


def cmd_whoami(args, context, navigator) -> int:
    screen = ProfileScreen(context, navigator)
    try:
        if not _open(screen):
            return 1
        view = screen.view
    finally:
        screen.unmount()
    print(f"Name   : {view.display_name}")
    print(f"Email  : {view.email or '--'}")
    print(f"Bio    : {view.bio}")
    print(f"Avatar : {view.avatar_url}")
    return 0


# ===========================
# Listing commands
# ===========================


def cmd_home(args, context, navigator) -> int:
    screen = HomeScreen(context, navigator)
    try:
        if not _open(screen):
            return 1
        _print_listings("Urgent Care", screen.sections.get("urgent", []))
        _print_listings("Trending", screen.sections.get("trending", []))
        _print_listings("New Arrivals", screen.sections.get("new_arrivals", []))
    finally:
        screen.unmount()
    return 0


def cmd_browse(args, context, navigator) -> int:
    screen = ExploreScreen(context, navigator)
    screen.filters = ListingFilters(species=args.species, breed=args.breed, sort=args.sort)
    try:
        if not _open(screen):
            return 1
        _print_listings("Pets", screen.listings)
        if screen.empty_message:
            print(screen.empty_message)
    finally:
        screen.unmount()
    return 0


def cmd_search(args, context, navigator) -> int:
    screen = SearchScreen(context, navigator)
    screen.set_filters(args.species, args.breed)
    try:
        if not _open(screen):
            return 1
        future = screen.submit(args.query)
        if future is None:
            print("Enter a search term.")
            return 1
        future.result()
        _print_listings(f"Results for {args.query.strip()!r}", screen.results)
    finally:
        screen.unmount()
    return 0


def cmd_show(args, context, navigator) -> int:
    screen = ListingDetailScreen(context, navigator, pet_id=args.pet_id)
    try:
        if not _open(screen):
            return 1
        if screen.listing is None:
            print(f"Pet {args.pet_id} not found.")
            return 1
        print(screen.listing)
        print(f"Favorited  : {'yes' if screen.favorited else 'no'}")
    finally:
        screen.unmount()
    return 0


def cmd_favorite(args, context, navigator) -> int:
    screen = ListingDetailScreen(context, navigator, pet_id=args.pet_id)
    try:
        if not _open(screen):
            return 1
        before = screen.favorited
        after = screen.toggle_favorite()
        pending = screen.favorite_pending
    finally:
        screen.unmount()
    if before == after:
        if pending:
            print(f"A favorite update for pet {args.pet_id} is already in progress.")
        else:
            print(f"Could not update favorite for pet {args.pet_id}.")
        return 1
    print(f"Pet {args.pet_id} {'added to' if after else 'removed from'} favorites.")
    return 0


def cmd_favorites(args, context, navigator) -> int:
    screen = FavoritesScreen(context, navigator)
    try:
        if not _open(screen):
            return 1
        if screen.empty_message:
            print(screen.empty_message)
        else:
            _print_listings("Favorites", screen.pets)
    finally:
        screen.unmount()
    return 0


def cmd_list_pet(args, context, navigator) -> int:
    screen = AddListingScreen(context, navigator)
    try:
        if not _open(screen):
            return 1
        form = screen.form
        form.name = args.name
        form.species = args.species
        form.location = args.location
        form.image_path = args.image
        form.breed = args.breed
        form.age = args.age
        form.gender = args.gender
        form.description = args.description
        form.health_status = args.health_status
        form.special_needs = args.special_needs
        listing = screen.submit()
        _print_alert(screen)
    finally:
        screen.unmount()
    if listing is None:
        return 1
    print(listing)
    return 0


def cmd_profile(args, context, navigator) -> int:
    screen = ProfileScreen(context, navigator)
    try:
        if not _open(screen):
            return 1
        if args.name is not None:
            screen.name = args.name
        if args.bio is not None:
            screen.bio = args.bio
        if args.avatar and not screen.upload_avatar(args.avatar):
            _print_alert(screen)
            return 1
        saved = screen.save()
        _print_alert(screen)
    finally:
        screen.unmount()
    return 0 if saved is not None else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="petadopt", description="Browse and list adoptable pets.")
    parser.add_argument(
        "--session-dir",
        default=SESSION_CACHE_DIR,
        help="Directory used to persist the signed-in session",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name, handler, help_text in (
        ("signup", cmd_signup, "Create an account with email and password"),
        ("login", cmd_login, "Sign in with email and password"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--email", required=True)
        p.add_argument("--password", required=True)
        p.set_defaults(handler=handler)

    p = sub.add_parser("otp-send", help="Text a one-time sign-in code")
    p.add_argument("--phone", required=True)
    p.set_defaults(handler=cmd_otp_send)

    p = sub.add_parser("otp-verify", help="Sign in with a texted code")
    p.add_argument("--phone", required=True)
    p.add_argument("--code", required=True)
    p.set_defaults(handler=cmd_otp_verify)

    sub.add_parser("logout", help="Sign out").set_defaults(handler=cmd_logout)
    sub.add_parser("whoami", help="Show the signed-in profile").set_defaults(handler=cmd_whoami)
    sub.add_parser("home", help="Show the home rails").set_defaults(handler=cmd_home)

    p = sub.add_parser("browse", help="Filter and sort listings")
    p.add_argument("--species", default=SPECIES_ALL)
    p.add_argument("--breed", default="")
    p.add_argument("--sort", choices=SORT_MODES, default=SORT_NEWEST)
    p.set_defaults(handler=cmd_browse)

    p = sub.add_parser("search", help="Search listings by name")
    p.add_argument("query")
    p.add_argument("--species", default=SPECIES_ALL)
    p.add_argument("--breed", default="")
    p.set_defaults(handler=cmd_search)

    for name, handler, help_text in (
        ("show", cmd_show, "Show one listing"),
        ("favorite", cmd_favorite, "Toggle a listing in your favorites"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("pet_id", type=int)
        p.set_defaults(handler=handler)

    sub.add_parser("favorites", help="List your favorites").set_defaults(handler=cmd_favorites)

    p = sub.add_parser("list-pet", help="List a pet for adoption")
    p.add_argument("--name", default="")
    p.add_argument("--species", default="")
    p.add_argument("--location", default="")
    p.add_argument("--image", default="", help="Path to a photo of the pet")
    p.add_argument("--breed", default="")
    p.add_argument("--age", default="")
    p.add_argument("--gender", default="")
    p.add_argument("--description", default="")
    p.add_argument("--health-status", default="")
    p.add_argument("--special-needs", action="store_true")
    p.set_defaults(handler=cmd_list_pet)

    p = sub.add_parser("profile", help="Edit your profile")
    p.add_argument("--name")
    p.add_argument("--bio")
    p.add_argument("--avatar", help="Path to a new avatar image")
    p.set_defaults(handler=cmd_profile)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entrypoint."""
    logging.basicConfig(
        level=get_log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    args = build_parser().parse_args(argv)

    context = SessionContext(store=SessionStore(args.session_dir))
    navigator = LoggingNavigator()
    AuthService(context, navigator).restore()
    return args.handler(args, context, navigator)


if __name__ == "__main__":
    raise SystemExit(main())
