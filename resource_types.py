"""Resource type enumerations and the SimData group table."""
from __future__ import annotations

import enum


class BinaryResourceType(enum.IntEnum):
    SIMDATA = 0x545AC67A
    COMBINED_TUNING = 0x62E94D38
    STRING_TABLE = 0x220557DA
    DDS_IMAGE = 0x00B2D882
    PNG_IMAGE = 0x2F7D0004
    OBJECT_DEFINITION = 0xC0DB5AE7
    OBJECT_CATALOG = 0x319E4F1D
    CAS_PART = 0x034AEECB


class TuningResourceType(enum.IntEnum):
    TUNING = 0x03B33DDF  # generic module tuning, never valid for instance tuning
    ACHIEVEMENT = 0x78559E9E
    ACHIEVEMENT_CATEGORY = 0x2451C101
    ACHIEVEMENT_COLLECTION = 0x04D2B465
    ACTION = 0x0C772E27
    ANIMATION = 0xEE17C6AD
    ASPIRATION = 0x28B64675
    ASPIRATION_CATEGORY = 0xE350DBD8
    ASPIRATION_TRACK = 0xC020FCAD
    AWAY_ACTION = 0xAFADAC48
    BALLOON = 0xEC6A8FC6
    BREED = 0x341D3F25
    BROADCASTER = 0xDEBAFB73
    BUCKS_PERK = 0xEC3DA10E
    BUFF = 0x6017E896
    BUSINESS = 0x75D807F3
    CALL_TO_ACTION = 0xF537B2E0
    CAREER = 0x73996BEB
    CAREER_EVENT = 0x94420322
    CAREER_GIG = 0xCCDB0EDD
    CAREER_LEVEL = 0x2C70ADF8
    CAREER_TRACK = 0x48C75CE3
    CAS_MENU = 0x935A83C2
    CAS_MENU_ITEM = 0x0CBA50F4
    CAS_STORIES_ANSWER = 0x80F12D17
    CAS_STORIES_QUESTION = 0x03246B9D
    CAS_STORIES_TRAIT_CHOOSER = 0x8DAD1549
    CLUB_INTERACTION_GROUP = 0xFA0FFA34
    CLUB_SEED = 0x2F59B437
    CONDITIONAL_LAYER = 0x9183DC91
    DETECTIVE_CLUE = 0x537449F6
    DRAMA_NODE = 0x2553F435
    ENSEMBLE = 0xB9881120
    GAME_RULESET = 0xE1477E18
    HEADLINE = 0xF401205D
    HOLIDAY_DEFINITION = 0x0E316F6D
    HOLIDAY_TRADITION = 0x3FCD2486
    HOUSEHOLD_MILESTONE = 0x3972E6F3
    INTERACTION = 0xE882D22F
    LOT_DECORATION = 0xFE2DB1AB
    LOT_DECORATION_PRESET = 0xDE1EF8FB
    LOT_TUNING = 0xD8800D66
    MOOD = 0xBA7B60B8
    NARRATIVE = 0x3E753C39
    NOTEBOOK_ENTRY = 0x9902FA76
    OBJECT = 0xB61DE6B4
    OBJECTIVE = 0x0069453E
    OBJECT_PART = 0x7147A350
    OBJECT_STATE = 0x5B02819E
    OPEN_STREET_DIRECTOR = 0x4B6FDEC4
    PIE_MENU_CATEGORY = 0x03E9D964
    POSTURE = 0xAD6FDF1F
    RABBIT_HOLE = 0xB16AD2FA
    RECIPE = 0xEB97F823
    REGION = 0x51E7A18D
    RELATIONSHIP_BIT = 0x0904DF10
    RELATIONSHIP_LOCK = 0xAE34E673
    REWARD = 0x6FA49828
    ROLE_STATE = 0x0E4D15FB
    ROYALTY = 0x37EF2EE7
    SEASON = 0xC98DD45E
    SERVICE_NPC = 0x9CC21262
    SICKNESS = 0xC3FBD8DE
    SIM_FILTER = 0x6E0DDA9F
    SIM_TEMPLATE = 0x0CA4C78B
    SITUATION = 0xFBC3AEEB
    SITUATION_GOAL = 0x598F28E7
    SITUATION_GOAL_SET = 0x9DF2F1F2
    SITUATION_JOB = 0x9C07855F
    SLOT_TYPE = 0x69A5DAA4
    SLOT_TYPE_SET = 0x3F163505
    SNIPPET = 0x7DF2169C
    SOCIAL_GROUP = 0x2E47A104
    SPELL = 0x1F3413D9
    STATIC_COMMODITY = 0x51077643
    STATISTIC = 0x339BC5BD
    STORY_PROGRESSION_ACTION = 0xBE04173A
    STRATEGY = 0x6224C9D6
    STREET = 0xF6E4CB00
    SUBROOT = 0xB7FF8F95
    TAG_SET = 0x49395302
    TEMPLATE_CHOOSER = 0x48C2D5ED
    TEST_BASED_SCORE = 0x4F739CEE
    TOPIC = 0x738E6C56
    TRAIT = 0xCB5FDDC7
    TUTORIAL = 0xE04A24A3
    TUTORIAL_TIP = 0x8FB3E0B1
    USER_INTERFACE_INFO = 0xB8BF1A63
    VENUE = 0xE6BBD7DE
    WALK_BY = 0x3FD6243E
    WEATHER_EVENT = 0x5806F5BA
    WEATHER_FORECAST = 0x497F3271
    ZONE_DIRECTOR = 0xF958A092
    ZONE_MODIFIER = 0x3C1D8799

    @classmethod
    def parse(cls, value: str | None) -> "TuningResourceType | None":
        """Map an ``i`` attribute such as ``"trait"`` or ``"relbit"`` to a type."""
        if not value:
            return None
        lowered = value.strip().lower()
        alias = _TUNING_ALIASES.get(lowered)
        if alias is not None:
            return alias
        return cls.__members__.get(lowered.upper())


# File extensions the game uses in place of the type name.
_TUNING_ALIASES: dict[str, TuningResourceType] = {
    "tun": TuningResourceType.TUNING,
    "relbit": TuningResourceType.RELATIONSHIP_BIT,
    "scommodity": TuningResourceType.STATIC_COMMODITY,
    "spaction": TuningResourceType.STORY_PROGRESSION_ACTION,
}

# Group of the SimData that accompanies an instance tuning of each type.
SIMDATA_GROUPS: dict[TuningResourceType, int] = {
    TuningResourceType.ACHIEVEMENT: 0x0019ED2D,
    TuningResourceType.ASPIRATION: 0x00198E3E,
    TuningResourceType.ASPIRATION_CATEGORY: 0x001998B2,
    TuningResourceType.ASPIRATION_TRACK: 0x001A0D4D,
    TuningResourceType.BUFF: 0x0017E8F6,
    TuningResourceType.BREED: 0x0068F9C2,
    TuningResourceType.CAREER: 0x00196B6D,
    TuningResourceType.CAREER_LEVEL: 0x0019B24A,
    TuningResourceType.CAREER_TRACK: 0x0019D7C3,
    TuningResourceType.CAS_MENU_ITEM: 0x00A4B283,
    TuningResourceType.CLUB_INTERACTION_GROUP: 0x003A1E7D,
    TuningResourceType.HOUSEHOLD_MILESTONE: 0x00A10A73,
    TuningResourceType.LOT_DECORATION: 0x0069A7DD,
    TuningResourceType.MOOD: 0x0017E9A1,
    TuningResourceType.OBJECT: 0x0017F2C0,
    TuningResourceType.OBJECTIVE: 0x0019C1C9,
    TuningResourceType.PIE_MENU_CATEGORY: 0x0018B4B1,
    TuningResourceType.REWARD: 0x001B6B28,
    TuningResourceType.SEASON: 0x0062A3C4,
    TuningResourceType.SPELL: 0x00960A3E,
    TuningResourceType.STATISTIC: 0x001D2C10,
    TuningResourceType.TRAIT: 0x00178C32,
    TuningResourceType.WEATHER_FORECAST: 0x0064D5B2,
}
