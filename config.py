"""Random Feed Configuration"""

import os
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).parent

# Server configuration
SERVER_HOST = os.environ.get('HOST', '0.0.0.0')
SERVER_PORT = int(os.environ.get('PORT', 8080))
DEBUG_MODE = os.environ.get('DEBUG', 'false').lower() == 'true'
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

# Database
MONGO_URI = os.environ.get('MONGODB_URI') or os.environ.get('MONGO_URI') or ''
MONGO_DB = os.environ.get('MONGODB_DB') or os.environ.get('MONGO_DB') or 'randomapp'
ITEMS_COLLECTION = 'items'
MONGO_TIMEOUT_MS = int(os.environ.get('MONGO_TIMEOUT_MS', 1500))

# Admin key for ingestion and maintenance endpoints
ADMIN_INGEST_KEY = os.environ.get('ADMIN_INGEST_KEY', '').strip()

# Network
USER_AGENT = 'RandomAppBot/1.0 (+https://random.app)'
PROVIDER_TIMEOUT = int(os.environ.get('RANDOM_PROVIDER_TIMEOUT_MS', 2500)) / 1000.0
PAGE_TIMEOUT = 1.5  # og:image lookups
INGEST_TIMEOUT = 10.0
NETWORK_ENABLED = os.environ.get('RANDOM_NETWORK', 'true').lower() != 'false'

# Local content
SHORTJOKES_PATH = os.environ.get('SHORTJOKES_PATH', str(BASE_DIR / 'data' / 'shortjokes.csv'))

# Feedback
DISLIKE_WEIGHT_FACTOR = 0.9
DISLIKE_SUPPRESS_THRESHOLD = int(os.environ.get('DISLIKE_SUPPRESS_THRESHOLD', 10000))

# Selection
ITEM_TYPES = ['image', 'quote', 'fact', 'joke', 'video', 'web']
DEFAULT_TYPES = ['image', 'quote', 'fact']
ORIGIN_WINDOW = 10

# Quotes from these authors are mostly skipped when they come off the network
LIMITED_AUTHORS = ['kanye west']
LIMITED_AUTHOR_SKIP_RATE = 0.8

# Queries used for feeds with a {query} placeholder when no hint is given
DEFAULT_QUERIES = {
    'image': ['weird collage', 'vintage', 'retro', 'obscure', 'museum', 'street', 'festival', 'zine'],
    'video': [
        'weird archive documentary',
        'retro craft tutorial',
        'tiny desk style cover',
        'street performance folk music',
        'analog animation short film',
        'odd vintage commercial',
        'experimental orchestra rehearsal',
        'public access tv variety',
    ],
    'web': ['forgotten homepage', 'old web gallery', 'handmade zine archive'],
}

# Feed sources. Each one maps a JSON endpoint onto raw item fields:
#   items: dotted path to the list of entries ('' when the payload is one entry)
#   fields: raw field -> dotted path inside an entry
#   env_key: environment variable that must be set (its value fills {key})
FEED_SOURCES = [
    {
        'name': 'uselessfacts',
        'type': 'fact',
        'url': os.environ.get('USELESSFACTS_BASE', 'https://uselessfacts.jsph.pl') + '/random.json?language=en',
        'items': '',
        'fields': {'text': 'text'},
        'source': {'name': 'UselessFacts', 'url': 'https://uselessfacts.jsph.pl'},
    },
    {
        'name': 'numbers',
        'type': 'fact',
        'url': 'https://numbersapi.com/random/trivia?json',
        'items': '',
        'fields': {'text': 'text'},
        'source': {'name': 'Numbers API', 'url': 'https://numbersapi.com'},
    },
    {
        'name': 'catfact',
        'type': 'fact',
        'url': 'https://catfact.ninja/fact',
        'items': '',
        'fields': {'text': 'fact'},
        'source': {'name': 'catfact.ninja', 'url': 'https://catfact.ninja'},
    },
    {
        'name': 'meowfacts',
        'type': 'fact',
        'url': 'https://meowfacts.herokuapp.com/',
        'items': 'data',
        'fields': {'text': ''},
        'source': {'name': 'meowfacts', 'url': 'https://meowfacts.herokuapp.com'},
    },
    {
        'name': 'dogapi',
        'type': 'fact',
        'url': 'https://dogapi.dog/api/facts',
        'items': 'facts',
        'fields': {'text': ''},
        'source': {'name': 'dogapi.dog', 'url': 'https://dogapi.dog'},
    },
    {
        'name': 'jokeapi',
        'type': 'joke',
        'url': 'https://v2.jokeapi.dev/joke/Any?type=single',
        'items': '',
        'fields': {'text': 'joke'},
        'source': {'name': 'JokeAPI', 'url': 'https://jokeapi.dev'},
    },
    {
        'name': 'chucknorris',
        'type': 'joke',
        'url': os.environ.get('CHUCK_BASE', 'https://api.chucknorris.io') + '/jokes/random',
        'items': '',
        'fields': {'text': 'value', 'url': 'url'},
        'source': {'name': 'api.chucknorris.io', 'url': 'https://api.chucknorris.io'},
    },
    {
        'name': 'quotable',
        'type': 'quote',
        'url': os.environ.get('QUOTABLE_BASE', 'https://api.quotable.io') + '/quotes/random?limit=6',
        'items': '',
        'fields': {'text': 'content', 'author': 'author'},
        'source': {'name': 'Quotable', 'url': 'https://quotable.io'},
    },
    {
        'name': 'zenquotes',
        'type': 'quote',
        'url': 'https://zenquotes.io/api/random',
        'items': '',
        'fields': {'text': 'q', 'author': 'a'},
        'source': {'name': 'ZenQuotes.io', 'url': 'https://zenquotes.io/'},
    },
    {
        'name': 'imgflip',
        'type': 'image',
        'url': 'https://api.imgflip.com/get_memes',
        'items': 'data.memes',
        'fields': {'url': 'url', 'thumb': 'url', 'title': 'name'},
        'source': {'name': 'Imgflip', 'url': 'https://imgflip.com'},
        'limit': 20,
    },
    {
        'name': 'giphy',
        'type': 'image',
        'url': 'https://api.giphy.com/v1/gifs/search?api_key={key}&q={query}&limit=25&rating=pg-13',
        'items': 'data',
        'fields': {
            'url': 'images.original.url',
            'thumb': 'images.preview_gif.url',
            'title': 'title',
            'page_url': 'url',
            'description': 'content_description',
        },
        'source': {'name': 'Giphy', 'url': 'https://giphy.com'},
        'env_key': 'GIPHY_API_KEY',
    },
    {
        'name': 'pixabay',
        'type': 'image',
        'url': 'https://pixabay.com/api/?key={key}&q={query}&image_type=photo&safesearch=true&per_page=25',
        'items': 'hits',
        'fields': {
            'url': 'largeImageURL',
            'thumb': 'previewURL',
            'title': 'tags',
            'page_url': 'pageURL',
        },
        'source': {'name': 'Pixabay', 'url': 'https://pixabay.com'},
        'env_key': 'PIXABAY_API_KEY',
    },
    {
        'name': 'reddit-youtube',
        'type': 'video',
        'url': 'https://www.reddit.com/r/funnyvideos/.json?limit=25',
        'items': 'data.children',
        'fields': {'url': 'data.url', 'title': 'data.title', 'page_url': 'data.permalink'},
        'match': {'url': r'youtu\.be/|youtube\.com/watch'},
        'source': {'name': 'Reddit', 'url': 'https://www.reddit.com'},
    },
    {
        'name': 'youtube',
        'type': 'video',
        'url': 'https://www.googleapis.com/youtube/v3/search?key={key}&part=snippet&type=video'
               '&maxResults=25&videoEmbeddable=true&q={query}',
        'items': 'items',
        'fields': {
            'videoId': 'id.videoId',
            'title': 'snippet.title',
            'description': 'snippet.description',
            'thumb': 'snippet.thumbnails.high.url',
        },
        'source': {'name': 'YouTube', 'url': 'https://www.youtube.com'},
        'env_key': 'YOUTUBE_API_KEY',
    },
    {
        'name': 'google-cse',
        'type': 'web',
        'url': 'https://www.googleapis.com/customsearch/v1?key={key}&cx={cx}&q={query}&num=10',
        'items': 'items',
        'fields': {'url': 'link', 'title': 'title'},
        'source': {'name': 'Google', 'url': 'https://www.google.com'},
        'env_key': 'GOOGLE_CSE_KEY',
        'env': {'cx': 'GOOGLE_CSE_CX'},
    },
]
