# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Transform presets and their selection policy.

Measured compression/quality of each encoding (quality on a 0-5 scale):

    t1-symbolic   39% compression, 4.58 quality
    t3-compact    56% compression, 3.83 quality
    t4-hybrid     24% compression, 5.00 quality
    baseline       0% compression, 5.00 quality (reference)

Selection is a pure function of fragment type and context pressure; the
presets only carry instructions for the host LLM and never transform
text themselves.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class TransformPreset:
    name: str
    description: str
    transform_to: str
    transform_from: str
    encode_instructions: str
    decode_instructions: str
    expected_compression: float
    expected_quality: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


T1_SYMBOLIC = "t1-symbolic"
T3_COMPACT = "t3-compact"
T4_HYBRID = "t4-hybrid"
BASELINE = "baseline"

HIGH_PRESSURE = 0.7
LOW_PRESSURE = 0.3


PRESETS: dict[str, TransformPreset] = {
    T1_SYMBOLIC: TransformPreset(
        name="wisdom-t1-symbolic",
        description="S-Expression encoding. 39% compression, 4.58/5 quality. Best for definitions and procedures.",
        transform_to="application/x-sexp",
        transform_from="text/plain",
        expected_compression=0.39,
        expected_quality=4.58,
        encode_instructions="""Encode the content as S-Expressions using this syntax:

Types: :obs (observation), :con (conclusion), :hyp (hypothesis), :pro (procedure), :def (definition), :ctx (counterexample), :syn (synthesis), :que (question)
Relations: :sup (supports), :cnt (contradicts), :ext (extends), :dep (depends_on), :spe (specializes)

Rules:
1. IDENTIFY fragment type
2. EXTRACT key entities
3. MAP entities to short symbols
4. STRUCTURE as nested S-expression
5. ADD metadata (:conf, :src)

Example:
(def qtg01
  (is-a "Qt Graphs" :module)
  (purpose :visualization (:2d :3d))
  (part-of :qt6))

(pro surf01
  (goal "3D surface plot")
  (steps
    (create "Q3DSurface")
    (add "QSurface3DSeries")
    (set-data "QSurfaceDataProxy")))""",
        decode_instructions="""Decode S-Expressions back to English:

1. PARSE S-expression
2. IDENTIFY fragment type from first symbol (:def, :obs, :pro, etc.)
3. EXPAND symbols to full terms
4. Apply templates:
   (def <id> (is-a <X> <Y>)) → "<X> is a <Y>."
   (pro <id> (goal <G>) (steps <S1> <S2>...)) → "To <G>: 1) <S1>, 2) <S2>, ..."
   (hyp <id> (if <C>) (then <E1> <E2>)) → "If <C>, then <E1> and <E2>."
   (obs <id> (supports <A> <B> :domain <D>)) → "<A> supports <B> in <D>."
5. POST-PROCESS for fluency""",
    ),
    T3_COMPACT: TransformPreset(
        name="wisdom-t3-compact",
        description="Compact schema encoding. 56% compression, 3.83/5 quality. Highest compression, best for factual data.",
        transform_to="application/x-compact-schema",
        transform_from="text/plain",
        expected_compression=0.56,
        expected_quality=3.83,
        encode_instructions="""Encode as typed compact schema records:

Fragment header: F{type:TYPE dom:DOMAIN conf:LEVEL}
Entity list: E[1:"label" 2:"label"]
Relations: R[1 predicate 2]
Steps (procedures): STEPS[{act:ACTION obj:ENTITY}]

Types: DEF, OBS, HYP, PROC, CONC, CTX, SYN, QUE
Confidence: LOW, MED, HIGH, CERT

Example:
F{type:DEF dom:CHEM conf:HIGH
  E[1:"NADH" 2:"NAD+" 3:"electrons"]
  R[1 donates 3]
  R[2 accepts 3]}

F{type:PROC dom:QT conf:HIGH
  E[1:"surface plot" 2:"Q3DSurface" 3:"Series"]
  STEPS[{act:CREATE obj:2} {act:ADD obj:3 to:2}]
  GOAL:1}

Use domain abbreviations freely. Prioritize compression over readability.""",
        decode_instructions="""Decode compact schema records to English:

1. PARSE fragment header (type, domain, confidence)
2. RESOLVE entity references to labels
3. EXPAND relations to subject-predicate-object
4. SELECT template based on fragment type:
   DEFINITION: "<E1> <relation> <E2>."
   OBSERVATION: "<E1> <relation> <E2>." [+ confidence]
   HYPOTHESIS: "If <condition>, then <consequence>."
   PROCEDURE: "To <goal>: <step1>, <step2>, ..."
5. POST-PROCESS for fluency""",
    ),
    T4_HYBRID: TransformPreset(
        name="wisdom-t4-hybrid",
        description="Natural language + structured metadata. 24% compression, 5.0/5 quality. Best for nuanced content.",
        transform_to="application/x-hybrid",
        transform_from="text/plain",
        expected_compression=0.24,
        expected_quality=5.0,
        encode_instructions="""Encode as hybrid format: condensed natural language + structured metadata.

Format:
f:ID {T:TYPE D:domain C:confidence}
text: "Condensed natural language summary"
E: [entity1:type, entity2:type]
R: [entity1 relation entity2, ...]
src: "source"

Types: OBS, CON, HYP, PROC, DEF, CTX, SYN, QUE

Example:
f:CN-RU01 {T:OBS D:geo C:.85}
text: "China supports Russia economically (oil, gas, tech, CIPS)
       but withholds lethal weapons to avoid sanctions."
E: [China:state, Russia:state, econ-support:concept]
R: [China provides econ-support to Russia,
    China withholds lethal-wpn from Russia]
src: "CFR-2025"

Keep the text readable and fluent. Structure adds precision, not replaces content.""",
        decode_instructions="""Decode hybrid format to full English:

1. READ the text field as the core content
2. EXPAND any abbreviations (CN→China, etc.)
3. INTEGRATE structured relations if they add info not in text
4. APPLY confidence qualifier if < HIGH
5. POST-PROCESS for fluency and completeness""",
    ),
    BASELINE: TransformPreset(
        name="wisdom-baseline",
        description="Plain English natural language. No compression, perfect quality. Default when no encoding needed.",
        transform_to="text/plain",
        transform_from="text/plain",
        expected_compression=0.0,
        expected_quality=5.0,
        encode_instructions="""Write clear, self-contained English knowledge fragments.

Each fragment should be:
1. Atomic: one concept per fragment
2. Self-contained: understandable without context
3. Typed: classify as observation, definition, procedure, hypothesis, etc.
4. Factual: verifiable where possible""",
        decode_instructions="Return the content as-is. No decoding needed for baseline fragments.",
    ),
}

# Quality-optimized default preset per fragment type
TYPE_TO_PRESET: dict[str, str] = {
    "DEFINITION": T1_SYMBOLIC,
    "PROCEDURE": T1_SYMBOLIC,
    "FACT": T3_COMPACT,
    "OBSERVATION": T3_COMPACT,
    "HYPOTHESIS": T4_HYBRID,
    "SYNTHESIS": T4_HYBRID,
    "INSIGHT": T4_HYBRID,
    "OPINION": T4_HYBRID,
    "ANTITHESIS": T4_HYBRID,
    "QUESTION": BASELINE,
    "ANSWER": BASELINE,
    "EXAMPLE": BASELINE,
}

# Types promoted to symbolic encoding when context is tight
_SYMBOLIC_UNDER_PRESSURE = frozenset({"HYPOTHESIS", "SYNTHESIS", "INSIGHT"})


def get_preset(key: str) -> TransformPreset | None:
    return PRESETS.get(key)


def select_preset(fragment_type: str, context_pressure: float = 0.0) -> str:
    """Pick a preset key for a fragment type.

    Args:
        fragment_type: Semantic type such as DEFINITION or HYPOTHESIS (case-insensitive)
        context_pressure: 0.0 (plenty of room) to 1.0 (token budget nearly spent)

    Returns:
        A key of PRESETS.
    """
    fragment_type = fragment_type.upper()

    if context_pressure > HIGH_PRESSURE:
        if fragment_type in _SYMBOLIC_UNDER_PRESSURE:
            return T1_SYMBOLIC
        return T3_COMPACT

    if context_pressure < LOW_PRESSURE:
        return TYPE_TO_PRESET.get(fragment_type, T4_HYBRID)

    return TYPE_TO_PRESET.get(fragment_type, T1_SYMBOLIC)
