"""
Pattern catalogues for the triage components.

Every table is plain immutable data: tuples of ``PatternRule`` records tagged
with a weight and a family. Components receive a ``RuleBook`` by reference and
run the generic matcher over it, so swapping or extending a table never needs a
code change in the scorers themselves.
"""
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Tuple

FLAGS = re.IGNORECASE | re.DOTALL


@dataclass(frozen=True)
class PatternRule:
    pattern: Pattern[str]
    weight: float = 0
    family: str = ""
    label: str = ""
    note: str = ""
    units: Tuple[str, ...] = ()
    outcome: Tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def rule(regex: str, weight: float = 0, family: str = "", label: str = "",
         note: str = "", units: Tuple[str, ...] = (), outcome: Tuple[str, ...] = ()) -> PatternRule:
    return PatternRule(re.compile(regex, FLAGS), weight, family, label, note, units, outcome)


def keyword(phrase: str, points: int) -> PatternRule:
    """Plain containment rule used by the lexical table"""
    return rule(re.escape(phrase), points, "lexical", label=phrase)


def match_rules(rules: Iterable[PatternRule], text: str) -> List[PatternRule]:
    return [r for r in rules if r.matches(text)]


def best_match(rules: Iterable[PatternRule], text: str) -> Optional[PatternRule]:
    """Highest-weight matching rule; later rules win ties"""
    best = None
    for r in match_rules(rules, text):
        if best is None or r.weight >= best.weight:
            best = r
    return best


@dataclass(frozen=True)
class RuleBook:
    lexical: Tuple[PatternRule, ...]
    severity: Tuple[PatternRule, ...]

    # Severity multipliers
    victim_count: Pattern[str]
    victim_plural: Pattern[str]
    panic_markers: Tuple[PatternRule, ...]
    missing_person: Pattern[str]
    number_words: Tuple[Tuple[str, int], ...]

    # Credibility
    crank_families: Tuple[PatternRule, ...]
    vague_words: Tuple[PatternRule, ...]
    hedging_weight: int
    no_emergency: Pattern[str]
    call_for_help: Pattern[str]
    contradiction_weight: int

    # Escalation signals
    threat: Pattern[str]
    retraction: Pattern[str]
    sarcasm: Pattern[str]
    apology: Pattern[str]
    recovery: Pattern[str]

    # Critical info
    locations: Tuple[PatternRule, ...]
    location_sections: Tuple[PatternRule, ...]
    street_address: Pattern[str]
    incident_families: Tuple[PatternRule, ...]
    explicit_victims: Pattern[str]
    singular_victim: Pattern[str]
    conditions: Tuple[PatternRule, ...]
    witness: Pattern[str]
    first_person: Pattern[str]
    hazards: Tuple[PatternRule, ...]
    immediate_actions: Tuple[PatternRule, ...]
    access: Pattern[str]

    # Intent
    intents: Tuple[PatternRule, ...]

    def number_value(self, token: str) -> Optional[int]:
        if token.isdigit():
            return int(token)
        for word, value in self.number_words:
            if word == token.lower():
                return value
        return None


NUMBER_WORDS = (
    ("one", 1), ("two", 2), ("three", 3), ("four", 4), ("five", 5),
    ("six", 6), ("seven", 7), ("eight", 8), ("nine", 9), ("ten", 10),
)
_NUMBER = r"\b(\d+|" + "|".join(w for w, _ in NUMBER_WORDS) + r")"


LEXICAL = (
    keyword("shark attack", 90),
    keyword("shark", 40),
    keyword("drowning", 60),
    keyword("not breathing", 60),
    keyword("unconscious", 50),
    keyword("bleeding", 40),
    keyword("attack", 40),
    keyword("attacked", 40),
    keyword("fire", 40),
    keyword("stuck", 50),
    keyword("trapped", 45),
    keyword("crushed", 50),
    keyword("pinned", 45),
    keyword("trouble", 30),
    keyword("help", 30),
    keyword("emergency", 30),
    keyword("injured", 30),
    keyword("fallen", 30),
    keyword("car", 35),
    keyword("vehicle", 30),
    keyword("jack", 40),
    keyword("fell", 35),
    keyword("under", 40),
    keyword("current", 20),
    keyword("rip current", 30),
    keyword("swept", 20),
    keyword("pulled", 20),
    keyword("struggling", 20),
    keyword("waving", 15),
    keyword("shouting", 15),
    keyword("screaming", 25),
    keyword("accident", 25),
    keyword("crash", 30),
    keyword("water", 10),
    keyword("ocean", 10),
    keyword("sea", 10),
    keyword("beach", 10),
    keyword("swimming", 10),
)

SEVERITY = (
    # Catastrophic
    rule(r"explosion|bomb", 10, "catastrophic",
         note="EXPLOSIVE THREAT: Bomb squad and full emergency response",
         units=("BOMB_SQUAD", "FIRE", "EMS", "POLICE")),
    rule(r"mass shooting|active shooter", 10, "catastrophic",
         note="ACTIVE SHOOTER: Tactical response and mass casualty standby",
         units=("SWAT", "MULTIPLE_POLICE", "EMS_STANDBY")),
    rule(r"building collapse|structure collapse", 9, "catastrophic",
         note="STRUCTURAL COLLAPSE: Urban search and rescue required",
         units=("FIRE_RESCUE", "EMS", "URBAN_RESCUE")),
    # Critical
    rule(r"^(?=.*shark)(?=.*blood)|shark attack", 8, "critical",
         note="SHARK ATTACK: Marine rescue and trauma care required",
         units=("COAST_GUARD", "LIFEGUARD", "EMS")),
    rule(r"drowning|^(?=.*under\s*water)(?=.*not coming up)", 7, "critical",
         note="DROWNING: Water rescue teams required",
         units=("WATER_RESCUE", "EMS")),
    rule(r"not breathing|unconscious", 7, "critical",
         note="RESPIRATORY/CONSCIOUSNESS: Priority medical response",
         units=("EMS_PRIORITY", "ALS")),
    rule(r"severe bleeding|blood everywhere", 6, "critical",
         note="SEVERE HEMORRHAGE: Trauma team required",
         units=("EMS", "TRAUMA_TEAM")),
    # Major
    rule(r"^(?=.*fire)(?=.*(building|house))", 6, "major",
         note="STRUCTURE FIRE: Fire suppression and medical standby",
         units=("FIRE", "EMS")),
    rule(r"car accident|vehicle crash", 5, "major",
         note="VEHICLE COLLISION: Traffic, medical and extrication units",
         units=("POLICE", "EMS", "FIRE_IF_ENTRAPMENT")),
    rule(r"trapped|stuck under", 6, "major",
         note="ENTRAPMENT: Technical rescue required",
         units=("FIRE_RESCUE", "EMS")),
    # Moderate
    rule(r"\bgun\b|weapon", 4, "moderate",
         note="WEAPON REPORTED: Police response",
         units=("POLICE",)),
    rule(r"chest pain|heart attack", 4, "moderate",
         note="CARDIAC SYMPTOMS: Medical response",
         units=("EMS",)),
    rule(r"seizure", 4, "moderate",
         note="SEIZURE: Medical response",
         units=("EMS",)),
    rule(r"fracture|broken (arm|leg|bone)", 3, "moderate",
         note="SUSPECTED FRACTURE: Medical response",
         units=("EMS",)),
    rule(r"\bsmoke\b", 2, "moderate",
         note="SMOKE REPORTED: Fire unit to investigate",
         units=("FIRE",)),
)

PANIC_MARKERS = (
    rule(r"\bhelp\b|please", 1, "panic", label="pleading"),
    rule(r"screaming|shouting", 1, "panic", label="screaming"),
    rule(r"panic|scared", 1, "panic", label="fear"),
    rule(r"oh my god|jesus", 1, "panic", label="exclamation"),
    rule(r"!{2,}", 1, "panic", label="punctuation"),
)

CRANK_FAMILIES = (
    rule(r"unicorn|\balien|\bfart|zebra doing karate|dragon|superman|batman|spaceship|teleport|\bmagic|wizard|fairy",
         40, "fictional", label="Fictional/absurd content"),
    rule(r"flying car|time travel|invisible|talking animal|alien invasion|zombie|vampire|monster",
         50, "impossible", label="Impossible scenario"),
    rule(r"i'?m joking|just kidding|\blol\b|haha|nothing wrong|i made it up|false alarm|never\s*mind|just testing|prank",
         60, "admission", label="Admission of false report"),
    rule(r"hehe|lmao|rofl|funny|hilarious",
         35, "laughter", label="Inappropriate laughter"),
)

VAGUE_WORDS = (
    rule(r"\bmaybe\b", label="maybe"),
    rule(r"\bi think\b", label="i think"),
    rule(r"not sure", label="not sure"),
    rule(r"don'?t know", label="don't know"),
    rule(r"\bpossibly\b", label="possibly"),
)

LOCATIONS = (
    rule(r"camps?\s*bay", label="camps bay"),
    rule(r"clifton", label="clifton"),
    rule(r"sea\s*point", label="sea point"),
    rule(r"hout\s*bay", label="hout bay"),
    rule(r"muizenberg", label="muizenberg"),
    rule(r"boulders", label="boulders"),
    rule(r"llandudno", label="llandudno"),
    rule(r"kalk\s*bay", label="kalk bay"),
    rule(r"fish\s*hoek", label="fish hoek"),
    rule(r"bloubergstrand|blouberg", label="bloubergstrand"),
)

LOCATION_SECTIONS = (
    rule(r"north(ern)?\s*(side|end)", label="north side"),
    rule(r"south(ern)?\s*(side|end)", label="south side"),
    rule(r"main\s*beach", label="main beach"),
    rule(r"near\s*the\s*rocks|by\s*the\s*rocks", label="near the rocks"),
    rule(r"lifeguard\s*(tower|hut)", label="near the lifeguard tower"),
    rule(r"parking\s*(lot|area)", label="parking area"),
)

# weight is specificity: a stored type is only replaced by a more specific one
INCIDENT_FAMILIES = (
    rule(r"not breathing|collapsed|heart attack|unconscious", 1, "medical",
         outcome=("Medical Emergency", "Emergency Medical Services")),
    rule(r"\bfire\b|smoke|flames", 2, "fire",
         outcome=("Fire Emergency", "Fire Department + Emergency Medical")),
    rule(r"drowning|rip\s*current|swept", 2, "water",
         outcome=("Water Rescue Emergency", "Lifeguard + Marine Rescue")),
    rule(r"\bgun\b|weapon|stabb|shooting", 3, "violence",
         outcome=("Violent Crime", "Police + Emergency Medical")),
    rule(r"stuck.*car|trapped.*vehicle|car.*fell", 3, "entrapment",
         outcome=("Vehicle Entrapment", "Fire Department + Emergency Medical")),
    rule(r"shark|\bbite\b|bitten", 3, "shark",
         outcome=("Shark Attack", "Emergency Medical Services + Marine Rescue")),
)

# weight is seriousness
CONDITIONS = (
    rule(r"waving|struggling|calling\s*(for\s*)?help", 1, "condition",
         outcome=("Conscious but in distress",)),
    rule(r"bleeding|blood", 2, "condition",
         outcome=("Active bleeding",)),
    rule(r"unconscious|not\s*moving|not\s*breathing", 3, "condition",
         outcome=("Unconscious/unresponsive",)),
)

HAZARDS = (
    rule(r"rough\s*sea|waves|current", label="Dangerous sea conditions"),
    rule(r"rocks|reef|shallow", label="Rocky/reef hazards"),
    rule(r"\bfire\b|smoke|flames", label="Fire/smoke"),
    rule(r"\bgun\b|weapon|knife", label="Armed person on scene"),
    rule(r"power\s*lines?|live\s*wires?", label="Electrical hazard"),
    rule(r"fuel|petrol|gas\s*leak", label="Fuel/gas leak"),
)

IMMEDIATE_ACTIONS = (
    rule(r"\bcpr\b", label="CPR in progress"),
    rule(r"applying\s*pressure|pressure\s*on\s*the\s*wound|tourniquet", label="Pressure applied to wound"),
    rule(r"pulled\s*(him|her|them)\s*out|got\s*(him|her|them)\s*out", label="Victim removed from danger"),
    rule(r"called\s*(the\s*)?lifeguards?|lifeguards?\s*(are|is)\s*(coming|on\s*the\s*way)", label="Lifeguards alerted"),
    rule(r"threw\s*(a|the)\s*(rope|ring|buoy)", label="Flotation thrown to victim"),
)

INTENTS = (
    rule(r"help|emergency|fire|injured|injury|accident|drowning|attack|shark|blood|bleeding|trapped|stuck|fell|unconscious|gun|crash",
         family="emergency"),
    rule(r"\b(hi|hello|hey|good\s*(morning|afternoon|evening))\b", family="greeting"),
)


@lru_cache(maxsize=1)
def default_rulebook() -> RuleBook:
    """Build the catalogues once per process and share them"""
    return RuleBook(
        lexical=LEXICAL,
        severity=SEVERITY,
        victim_count=re.compile(_NUMBER + r"\s*(people|persons?|swimmers?|victims?|casualt)", FLAGS),
        victim_plural=re.compile(r"swimmers|people|victims|children|kids", FLAGS),
        panic_markers=PANIC_MARKERS,
        missing_person=re.compile(r"missing|disappeared", FLAGS),
        number_words=NUMBER_WORDS,
        crank_families=CRANK_FAMILIES,
        vague_words=VAGUE_WORDS,
        hedging_weight=25,
        no_emergency=re.compile(r"no emergency", FLAGS),
        call_for_help=re.compile(r"help", FLAGS),
        contradiction_weight=30,
        threat=re.compile(
            r"\b(shark|blood|gun|fire|injured|missing|attack|drowning|emergency|help|trapped|accident|screaming)",
            FLAGS),
        retraction=re.compile(
            r"just kidding|not really|i made it up|wasn'?t serious|false alarm|joking|kidding|made (it )?up|\bfake\b|(it|that) was (all )?a lie|\bi lied\b",
            FLAGS),
        sarcasm=re.compile(
            r"don'?t you think it'?s funny|\blol\b|haha|funny|hilarious|\bjoke\b|prank",
            FLAGS),
        apology=re.compile(
            r"sorry|mistake|meant to|this is real|still ongoing|continuing|actually happening|i was wrong",
            FLAGS),
        recovery=re.compile(
            r"sorry.*meant to send that elsewhere|this emergency is ongoing|i made a mistake|please help|i was wrong|misclicked|wrong tab|accident",
            FLAGS),
        locations=LOCATIONS,
        location_sections=LOCATION_SECTIONS,
        street_address=re.compile(
            r"\b\d+\s+[a-z][a-z\s]{1,30}?\s(street|st|road|rd|avenue|ave|drive|dr|lane|ln)\b", FLAGS),
        incident_families=INCIDENT_FAMILIES,
        explicit_victims=re.compile(_NUMBER + r"\s*(person|people|victims?)", FLAGS),
        singular_victim=re.compile(r"\b(someone|somebody|a person|a man|a woman|a child|he|she|victim)\b", FLAGS),
        conditions=CONDITIONS,
        witness=re.compile(r"\b(i see|i can see|watching|witnessed|i saw)\b", FLAGS),
        first_person=re.compile(r"\b(i am|i'm|me|my)\b", FLAGS),
        hazards=HAZARDS,
        immediate_actions=IMMEDIATE_ACTIONS,
        access=re.compile(
            r"((gate|door|access)\s*code\s*(is\s*)?\w+|\b(use|through|via)\s*the\s*[\w\s]{1,30}?(entrance|gate|stairs|path))",
            FLAGS),
        intents=INTENTS,
    )
