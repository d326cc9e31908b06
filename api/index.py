from mangum import Mangum

from shopledger.api import app

handler = Mangum(app, lifespan="auto")
