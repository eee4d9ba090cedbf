"""
End-to-end example of survey response analytics using the SurveyStatsTool.

This example builds a small JSON dump of a survey and its results, then
walks through selecting the survey, switching date ranges, reading
per-question figures and exporting the statistics.
"""

import json
from datetime import datetime, timedelta, timezone

import numpy as np

from SurveyStatsTool import SurveyStatsTool


def create_sample_dump(path, n_responses=200):
    """Write a sample dump of one survey and its results."""
    np.random.seed(42)
    now = datetime.now(timezone.utc)

    survey = {
        'survey_id': 'srv_event_2024',
        'title': 'Developer Meetup Feedback',
        'description': 'Post-event feedback form',
        'questions': [
            {'id': 'q_name', 'text': 'Name', 'type': 'text'},
            {'id': 'q1', 'text': 'How did you hear about the meetup?', 'type': 'radio',
             'options': ['Newsletter', 'Friend', 'Social media', 'Other']},
            {'id': 'q2', 'text': 'Which sessions did you attend?', 'type': 'checkbox',
             'options': [{'label': 'Keynote', 'value': 'keynote'},
                         {'label': 'Workshop', 'value': 'workshop'},
                         {'label': 'Lightning talks', 'value': 'lightning'}]},
            {'id': 'q3', 'text': 'Overall rating', 'type': 'radio',
             'options': ['1', '2', '3', '4', '5']},
            {'id': 'q4', 'text': 'What should we improve?', 'type': 'text'},
        ],
    }

    comments = ['More coffee', 'Bigger room', 'Great talks, thanks!', 'Start a bit later', '']
    results = []
    for i in range(n_responses):
        answers = {
            'q_name': f'Attendee {i + 1}',
            'q1': str(np.random.choice(['Newsletter', 'Friend', 'Social media', 'Other'],
                                       p=[0.4, 0.3, 0.2, 0.1])),
            'q3': str(np.random.choice(['1', '2', '3', '4', '5'], p=[0.05, 0.05, 0.2, 0.4, 0.3])),
        }

        # Not everyone answers the optional questions
        if np.random.random() < 0.8:
            sessions = [s for s in ['keynote', 'workshop', 'lightning'] if np.random.random() < 0.5]
            answers['q2'] = sessions
        if np.random.random() < 0.5:
            answers['q4'] = str(np.random.choice(comments))

        created_at = now - timedelta(days=int(np.random.gamma(2, 40)), minutes=int(np.random.randint(0, 1440)))
        results.append({
            'survey_id': survey['survey_id'],
            'answers': answers,
            'created_at': created_at.isoformat(),
        })

    with open(path, 'w', encoding='utf-8') as f:
        json.dump({'surveys': [survey], 'results': results}, f, ensure_ascii=False, indent=2)

    return survey['survey_id']


def main():
    """Run the survey statistics example."""
    print("=" * 60)
    print("SURVEY RESPONSE ANALYTICS EXAMPLE")
    print("=" * 60)

    # Step 1: Create sample data
    print("\n1. Creating sample survey dump...")
    survey_id = create_sample_dump('sample_survey_dump.json')
    print("   - Sample dump saved to 'sample_survey_dump.json'")

    # Step 2: Initialize and load
    print("\n2. Initializing Survey Stats Tool...")
    tool = SurveyStatsTool(log_level='WARNING')
    surveys = tool.load_survey_data('sample_survey_dump.json')
    print(f"   - {len(surveys)} survey(s) available")

    # Step 3: Select the survey under each date range
    print("\n3. Responses per date range...")
    tool.select_survey(survey_id)
    for preset in ['7d', '1m', '6m', '1y', 'all']:
        stats = tool.apply_date_range(preset)
        print(f"   - {tool.session.date_preset.label:<16} {stats.total_responses:>4} responses, "
              f"{stats.completion_rate}% complete")

    # Step 4: Per-question figures
    print("\n4. Per-question statistics (all time)...")
    for question in tool.latest_stats.questions:
        kpi = tool.question_kpi(question.id)
        print(f"   - {kpi['title']}")
        print(f"     answered by {kpi['responded_count']}, dropoff {question.dropoff_rate}%, "
              f"top option: {kpi['top_option']}")
        for option in question.options:
            print(f"       * {option.label:<16} {option.count:>4} ({option.percent}%)")
        for answer in question.text_answers[:3]:
            print(f"       > {answer}")

    # Step 5: Dropoff breakdown
    print("\n5. Dropoff breakdown...")
    for item in tool.dropoff_items():
        print(f"   - Q{item.question_number}: {item.dropoff_rate}% ({item.severity.value})")

    # Step 6: Export
    print("\n6. Exporting statistics...")
    long_text = tool.exporter.to_csv(tool.latest_stats, layout='long', include_bom=False)
    print(f"   - Long layout: {len(long_text.splitlines()) - 1} rows")
    csv_path = tool.export_stats('.')
    json_path = tool.export_stats('.', fmt='json')
    print(f"   - Wide CSV: {csv_path}")
    print(f"   - JSON: {json_path}")

    print("\n" + "=" * 60)
    print("ANALYSIS COMPLETE")
    print("=" * 60)

    return tool


if __name__ == "__main__":
    main()
