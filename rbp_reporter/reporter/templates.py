"""
Jinja2 templates of the per-test page and the run summary page.
"""

BASE_STYLE = """
    <link rel="stylesheet" href="https://fonts.googleapis.com/css2?family=Material+Symbols+Outlined">
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            margin: 0;
            padding: 20px;
            background: #f5f5f5;
            line-height: 1.6;
        }
        .container {
            max-width: 1200px;
            margin: 0 auto;
            background: white;
            padding: 30px;
            border-radius: 8px;
            box-shadow: 0 2px 8px rgba(0,0,0,0.1);
        }
        h1, h2, h3 { color: #333; }
        .test-info { color: #666; margin-bottom: 20px; }
        .summary {
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(160px, 1fr));
            gap: 20px;
            margin: 30px 0;
        }
        .metric {
            background: #f9f9f9;
            padding: 20px;
            border-radius: 6px;
            text-align: center;
        }
        .metric-value { font-size: 2em; font-weight: bold; }
        .metric-label { color: #666; font-size: 0.9em; text-transform: uppercase; }
        .passed { color: #4caf50; }
        .failed, .timedOut, .interrupted { color: #f44336; }
        .skipped { color: #ff9800; }
        .flaky { color: #ffc107; }
        .tag {
            display: inline-flex;
            align-items: center;
            gap: 4px;
            padding: 2px 10px;
            border-radius: 12px;
            font-size: 0.85em;
            margin: 2px;
        }
        .tag.invalid { text-decoration: line-through; }
        .error-message {
            background: #ffebee;
            padding: 15px;
            border-radius: 4px;
            border-left: 4px solid #f44336;
            font-family: monospace;
            margin: 10px 0;
        }
        .screenshots img { max-width: 100%; border: 1px solid #ddd; border-radius: 4px; }
        table { width: 100%; border-collapse: collapse; margin: 20px 0; }
        th, td { padding: 10px; text-align: left; border-bottom: 1px solid #e0e0e0; }
        th { background: #f5f5f5; font-weight: 600; }
        .prompt-actions { display: flex; gap: 10px; flex-wrap: wrap; margin: 10px 0; }
        .copy-prompt-btn {
            background: #4a4a4a;
            color: white;
            border: 1px solid #666;
            padding: 8px 12px;
            border-radius: 4px;
            cursor: pointer;
        }
        pre.prompt { white-space: pre-wrap; background: #f5f5f5; padding: 15px; border-radius: 4px; }
        .footer { margin-top: 40px; color: #666; font-size: 0.9em; text-align: center; }
    </style>
"""

TEST_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ record.num }} - {{ record.title }}</title>
""" + BASE_STYLE + """
</head>
<body>
    <div class="container">
        <a href="../{{ summary_name }}">&larr; Back to summary</a>
        <h1>
            <span class="material-symbols-outlined {{ record.status }}">{{ record.status_icon }}</span>
            {{ record.title }}
        </h1>
        <div class="test-info">
            {{ record.file_name }} | {{ record.browser }} | {{ record.duration }}
        </div>

        {% if record.description %}
        <h2>Description</h2>
        <p>{{ record.description }}</p>
        {% endif %}

        {% if record.tag_details %}
        <h2>Tags</h2>
        <div>
            {% for tag in record.tag_details | sort_tags %}
            <span class="tag{% if not tag.valid %} invalid{% endif %}" style="{{ tag.color | badge_css }}"
                  title="{{ tag.category or 'uncategorized' }}{% if tag.error %}: {{ tag.error }}{% endif %}">
                <span class="material-symbols-outlined">{{ tag.icon }}</span>{{ tag.normalized }}
            </span>
            {% endfor %}
        </div>
        {% endif %}

        <h2>Pre Conditions</h2>
        <ol>
            {% for condition in record.pre_conditions %}<li>{{ condition }}</li>{% endfor %}
        </ol>

        <h2>Steps</h2>
        <ol>
            {% for step in record.steps %}<li>{{ step }}</li>{% endfor %}
        </ol>

        <h2>Post Conditions</h2>
        <ol>
            {% for condition in record.post_conditions %}<li>{{ condition }}</li>{% endfor %}
        </ol>

        {% if record.errors %}
        <h2>Errors</h2>
        {% for error in record.errors %}
        <div class="error-message">{{ error | safe }}</div>
        {% endfor %}
        {% endif %}

        {% if record.prompts %}
        <h2>AI Debugging Prompts</h2>
        <div class="prompt-actions">
            <button class="copy-prompt-btn" onclick="copyPrompt('prompt-full')">Copy Full Prompt</button>
            <button class="copy-prompt-btn" onclick="copyPrompt('prompt-quick')">Quick Analysis</button>
            <button class="copy-prompt-btn" onclick="copyPrompt('prompt-debug')">Debug Help</button>
        </div>
        <details><summary>Full prompt</summary><pre class="prompt" id="prompt-full">{{ record.prompts.full }}</pre></details>
        <details><summary>Quick prompt</summary><pre class="prompt" id="prompt-quick">{{ record.prompts.quick }}</pre></details>
        <details><summary>Debug prompt</summary><pre class="prompt" id="prompt-debug">{{ record.prompts.debug }}</pre></details>
        <script>
            function copyPrompt(id) {
                const text = document.getElementById(id).textContent;
                navigator.clipboard.writeText(text);
            }
        </script>
        {% endif %}

        {% if record.screenshot_paths %}
        <h2>Screenshots</h2>
        <div class="screenshots">
            {% for screenshot in record.screenshot_paths %}
            <img src="{{ screenshot }}" alt="Screenshot {{ loop.index }}">
            {% endfor %}
        </div>
        {% endif %}

        {% if record.video_path %}
        <h2>Video</h2>
        <video controls width="100%" src="{{ record.video_path }}"></video>
        <p><a href="{{ record.video_path }}">Download video</a></p>
        {% endif %}

        {% if record.attachments %}
        <h2>Attachments</h2>
        <ul>
            {% for attachment in record.attachments %}
            <li><a href="{{ attachment.path or attachment.name }}">{{ attachment.name }}</a></li>
            {% endfor %}
        </ul>
        {% endif %}

        <div class="footer">Test #{{ record.num }}</div>
    </div>
</body>
</html>
"""

SUMMARY_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ title }}</title>
""" + BASE_STYLE + """
</head>
<body>
    <div class="container">
        <h1>
            <span class="material-symbols-outlined {{ summary.status }}">{{ summary.status_icon }}</span>
            {{ title }}
        </h1>
        <div class="test-info">Status: {{ summary.status }} | Duration: {{ summary.duration }}</div>

        <div class="summary">
            <div class="metric"><div class="metric-value">{{ summary.total }}</div><div class="metric-label">Total</div></div>
            <div class="metric"><div class="metric-value passed">{{ summary.total_passed }}</div><div class="metric-label">Passed</div></div>
            <div class="metric"><div class="metric-value failed">{{ summary.total_failed }}</div><div class="metric-label">Failed</div></div>
            <div class="metric"><div class="metric-value skipped">{{ summary.total_skipped }}</div><div class="metric-label">Skipped</div></div>
            <div class="metric"><div class="metric-value flaky">{{ summary.total_flaky }}</div><div class="metric-label">Flaky</div></div>
        </div>

        {% if summary.environment %}
        <h2>Environment</h2>
        <table>
            <tr><th>OS</th><td>{{ summary.environment.os }}</td></tr>
            <tr><th>Python</th><td>{{ summary.environment.python_version }}</td></tr>
            <tr><th>Automation library</th><td>{{ summary.environment.automation_version }}</td></tr>
            <tr><th>Browsers</th><td>{{ summary.environment.browsers | join(", ") }}</td></tr>
            <tr><th>Started</th><td>{{ summary.environment.timestamp }}</td></tr>
        </table>
        {% endif %}

        {% if tag_stats.total %}
        <h2>Tags</h2>
        <p>
            {% for category, count in tag_stats.by_category.items() %}{{ category }}: {{ count }}{% if not loop.last %}, {% endif %}{% endfor %}
            {% if tag_stats.invalid %} | invalid: {{ tag_stats.invalid }}{% endif %}
        </p>
        {% endif %}

        {% for file_name, records in summary.grouped_results.items() %}
        <h2>{{ file_name }}</h2>
        <table>
            <tr><th>#</th><th>Test</th><th>Browser</th><th>Status</th><th>Duration</th></tr>
            {% for record in records %}
            <tr>
                <td>{{ record.num }}</td>
                <td><a href="{{ record.num }}/index.html">{{ record.title }}</a></td>
                <td>{{ record.browser }}</td>
                <td class="{{ record.status }}"><span class="material-symbols-outlined">{{ record.status_icon }}</span> {{ record.status }}</td>
                <td>{{ record.duration }}</td>
            </tr>
            {% endfor %}
        </table>
        {% endfor %}

        <div class="footer">Generated at {{ generated_at }}</div>
    </div>
</body>
</html>
"""
