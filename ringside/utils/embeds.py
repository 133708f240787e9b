"""
Embed builders for show and championship announcements.

Keeps result formatting in one place so the notifier only deals with
delivery.
"""

import discord
from typing import Optional, Tuple
from ringside.data_models.records import ShowCompletedEvent
from ringside.constants import UIConstants


def rating_tier(overall_rating: float) -> Tuple[str, int]:
    """
    Map an overall show rating to its headline text and embed color.

    Args:
        overall_rating: Show rating on the 1-5 scale

    Returns:
        (tier text, color) tuple
    """
    if overall_rating >= 4.5:
        return "⭐⭐⭐⭐⭐ Spectacular!", UIConstants.SPECTACULAR_COLOR
    if overall_rating >= 4:
        return "⭐⭐⭐⭐ Great Show!", UIConstants.GREAT_COLOR
    if overall_rating >= 3.5:
        return "⭐⭐⭐½ Good Show", UIConstants.GOOD_COLOR
    if overall_rating < 2.5:
        return "⭐⭐ Poor Show", UIConstants.POOR_COLOR
    return "⭐⭐⭐ Average", UIConstants.AVERAGE_COLOR


def build_show_results_embed(event: ShowCompletedEvent) -> discord.Embed:
    """
    Build the results embed for a completed show.

    Args:
        event: Completed show payload

    Returns:
        Formatted Discord embed ready for sending
    """
    tier_text, tier_color = rating_tier(event.overall_rating)

    embed = discord.Embed(
        title=f"{event.show_name} Results",
        description=f"Presented by {event.company_name} at {event.venue_name}",
        color=tier_color
    )

    embed.add_field(
        name="Main Event",
        value=event.main_event or "No matches",
        inline=False
    )
    embed.add_field(
        name="Rating",
        value=f"{event.overall_rating:.1f}/5 {tier_text}\nCritics: {event.critic_rating:.1f}/5",
        inline=True
    )
    embed.add_field(
        name="Attendance",
        value=f"{event.attendance:,} / {event.capacity:,} ({event.attendance_percentage:.1f}%)",
        inline=True
    )
    embed.add_field(
        name="Venue",
        value=f"{event.venue_name}\n{event.venue_location}" if event.venue_location else event.venue_name,
        inline=True
    )
    embed.add_field(name="Revenue", value=f"${event.total_revenue:,.0f}", inline=True)
    embed.add_field(name="Expenses", value=f"${event.total_costs:,.0f}", inline=True)
    embed.add_field(name="Profit", value=f"${event.profit:,.0f}", inline=True)

    embed.set_footer(text=event.company_name)
    return embed


def build_show_results_message(event: ShowCompletedEvent) -> str:
    tier_text, _ = rating_tier(event.overall_rating)
    return f"📺 **SHOW RESULTS:** {event.company_name} presents {event.show_name} - {tier_text}"


def build_championship_embed(championship_name: str, champion_name: str, company_name: str,
                             prestige: float, previous_champion: Optional[str] = None,
                             show_name: Optional[str] = None) -> discord.Embed:
    """Build the title change embed"""
    embed = discord.Embed(
        title=f"{UIConstants.TROPHY_EMOJI} New Champion: {champion_name}",
        color=UIConstants.CHAMPIONSHIP_COLOR
    )

    embed.add_field(name="Championship", value=championship_name, inline=True)
    embed.add_field(name="Champion", value=champion_name, inline=True)
    embed.add_field(name="Promotion", value=company_name, inline=True)
    embed.add_field(name="Prestige", value=f"{prestige:.0f}/100", inline=True)

    if previous_champion:
        embed.add_field(name="Defeated", value=previous_champion, inline=True)
    if show_name:
        embed.add_field(name="Event", value=show_name, inline=True)

    return embed
