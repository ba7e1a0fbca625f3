"""GraphQL operation identifiers and feature flags for the upstream API.

Query ids rotate upstream from time to time; every entry here can be
overridden with ``TL_OPERATION_IDS`` (a JSON object).
"""

DEFAULT_OPERATION_IDS: dict[str, str] = {
    "UserByScreenName": "Yka-W8dz7RaEuQNkroPkYw",
    "UserByRestId": "Qw77dDjp9xCpUY-AXwt-yQ",
    "UserTweets": "E3opETHurmVJflFsUBVuUQ",
    "UserTweetsAndReplies": "bt4TKuFz4T7Ckk-VvQVSow",
    "UserMedia": "dexO_2tohK86JDudXXG3Yw",
    "Likes": "aeJWz--kknVBOl7wQ7gh7Q",
    "TweetDetail": "QuBlQ6SxNAQCt6-kBiCXCQ",
    "SearchTimeline": "UN1i3zUiCWa-6r-Uaho4fw",
    "ListLatestTweetsTimeline": "Pa45JvqZuKcW1plybfgBlQ",
    "HomeTimeline": "HJFjzBgCs16TqxewQOeLNg",
    "HomeLatestTimeline": "DiTkXJgLqBBxCs7zaYsbtA",
}

_TIMELINE_FEATURES: dict[str, bool] = {
    "rweb_tipjar_consumption_enabled": True,
    "responsive_web_graphql_exclude_directive_enabled": True,
    "verified_phone_label_enabled": False,
    "creator_subscriptions_tweet_preview_api_enabled": True,
    "responsive_web_graphql_timeline_navigation_enabled": True,
    "responsive_web_graphql_skip_user_profile_image_extensions_enabled": False,
    "communities_web_enable_tweet_community_results_fetch": True,
    "c9s_tweet_anatomy_moderator_badge_enabled": True,
    "tweetypie_unmention_optimization_enabled": True,
    "responsive_web_edit_tweet_api_enabled": True,
    "graphql_is_translatable_rweb_tweet_is_translatable_enabled": True,
    "view_counts_everywhere_api_enabled": True,
    "longform_notetweets_consumption_enabled": True,
    "responsive_web_twitter_article_tweet_consumption_enabled": True,
    "tweet_awards_web_tipping_enabled": False,
    "freedom_of_speech_not_reach_fetch_enabled": True,
    "standardized_nudges_misinfo": True,
    "tweet_with_visibility_results_prefer_gql_limited_actions_policy_enabled": True,
    "longform_notetweets_rich_text_read_enabled": True,
    "longform_notetweets_inline_media_enabled": True,
    "responsive_web_enhance_cards_enabled": False,
}

_USER_FEATURES: dict[str, bool] = {
    "hidden_profile_subscriptions_enabled": True,
    "rweb_tipjar_consumption_enabled": True,
    "responsive_web_graphql_exclude_directive_enabled": True,
    "verified_phone_label_enabled": False,
    "highlights_tweets_tab_ui_enabled": True,
    "responsive_web_twitter_article_notes_tab_enabled": True,
    "subscriptions_feature_can_gift_premium": True,
    "creator_subscriptions_tweet_preview_api_enabled": True,
    "responsive_web_graphql_skip_user_profile_image_extensions_enabled": False,
    "responsive_web_graphql_timeline_navigation_enabled": True,
}

FEATURES: dict[str, dict[str, bool]] = {
    "UserByScreenName": _USER_FEATURES,
    "UserByRestId": _USER_FEATURES,
}


def features_for(operation: str) -> dict[str, bool]:
    """Return the feature flags sent with a GraphQL operation."""
    return FEATURES.get(operation, _TIMELINE_FEATURES)
