"""
Scripted demo of the response pipeline on typical LLM failure modes.

Runs offline (no LLM call): each sample completion goes through extraction,
sanitizing, validation, repair and fallback.

Usage:
    python -m scripts.demo
"""

from dotenv import load_dotenv
load_dotenv()

from healthreport.logging_config import setup_logging
from healthreport.pipeline import run_resilient_extraction

SAMPLES = [
    (
        "Fenced JSON with prose around it",
        "Here is the result:\n```json\n"
        '{"score": 72, "status": "양호", "analysis": "ok", "recommendations": [], "concerns": []}'
        "\n```",
    ),
    (
        "Completion cut off mid-object",
        '{"score": 80, "status": "good",',
    ),
    (
        "Unescaped quotes inside a string",
        '{"analysis": "He said "hi" to me", "score": 50, "status":"x",'
        '"recommendations":[],"concerns":[]}',
    ),
    (
        "No JSON at all",
        "I'm sorry, I cannot produce a structured analysis for this measurement. "
        "Overall the score: 58 looks moderate.",
    ),
    (
        "Trailing comma in an array",
        '{"score":1,"status":"a","analysis":"b","recommendations":[1,2,],"concerns":[]}',
    ),
]


def main():
    setup_logging("WARNING")

    print("\n" + "=" * 60)
    print("  DEMO: LLM Response Pipeline")
    print("=" * 60)

    for title, raw in SAMPLES:
        print(f"\n--- {title} ---")
        print(f"Input:  {raw!r}")
        outcome = run_resilient_extraction(raw, "eeg")
        print(f"Source: {outcome.source}"
              + (f" ({outcome.candidate.pattern_name})" if outcome.candidate else ""))
        if outcome.applied_fixes:
            print(f"Fixes:  {', '.join(outcome.applied_fixes)}")
        print(f"Repaired: {outcome.repaired} | completeness: {outcome.validation.score}")
        print(f"Result: {outcome.result}")


if __name__ == "__main__":
    main()
